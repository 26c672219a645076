"""
chord.config — YAML Configuration Loader
=========================================

Reads ``config.yaml`` for the presentation of the two system roles that
every guild is bootstrapped with, the General role's default permissions,
and whether audit events are recorded.  The rank sentinels themselves are
fixed in :mod:`chord.constants` and are not configurable.

Usage::

    from chord.config import load_config

    cfg = load_config()                 # reads ./config.yaml by default
    print(cfg.general_role_name)        # "general"
    print(cfg.general_permissions)      # PermissionSet
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from chord.constants import (
    GENERAL_ROLE_COLOR,
    GENERAL_ROLE_NAME,
    OWNER_ROLE_COLOR,
    OWNER_ROLE_NAME,
)
from chord.engine.permissions import ALL_BASIC, PermissionSet, permission_from_name


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class ChordConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    owner_role_name: str = OWNER_ROLE_NAME
    owner_role_color: str = OWNER_ROLE_COLOR
    general_role_name: str = GENERAL_ROLE_NAME
    general_role_color: str = GENERAL_ROLE_COLOR
    general_permissions: PermissionSet = field(
        default_factory=lambda: PermissionSet(int(ALL_BASIC))
    )
    audit_enabled: bool = True


DEFAULT_CONFIG = ChordConfig()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> ChordConfig:
    """Read *path* and return a :class:`ChordConfig` instance.

    Every key is optional; absent keys keep their defaults.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    ValueError
        If ``general_permissions`` names an unknown permission.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    roles = raw.get("system_roles") or {}
    owner = roles.get("owner") or {}
    general = roles.get("general") or {}

    general_permissions = DEFAULT_CONFIG.general_permissions
    if general.get("permissions") is not None:
        general_permissions = PermissionSet.of(
            *(permission_from_name(name) for name in general["permissions"])
        )

    return ChordConfig(
        owner_role_name=owner.get("name", OWNER_ROLE_NAME),
        owner_role_color=owner.get("color", OWNER_ROLE_COLOR),
        general_role_name=general.get("name", GENERAL_ROLE_NAME),
        general_role_color=general.get("color", GENERAL_ROLE_COLOR),
        general_permissions=general_permissions,
        audit_enabled=bool(raw.get("audit_enabled", True)),
    )
