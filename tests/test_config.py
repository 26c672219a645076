"""
tests/test_config.py — YAML Configuration Loader Tests
=======================================================
"""

from __future__ import annotations

import pytest

from chord.config import DEFAULT_CONFIG, load_config
from chord.engine.permissions import ALL_BASIC, Permission, PermissionSet


def _write(tmp_path, text: str):
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadConfig:
    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="config.yaml.example"):
            load_config(tmp_path / "absent.yaml")

    def test_empty_file_gives_defaults(self, tmp_path):
        cfg = load_config(_write(tmp_path, ""))
        assert cfg == DEFAULT_CONFIG
        assert cfg.general_permissions.bits == int(ALL_BASIC)
        assert cfg.audit_enabled is True

    def test_reads_system_roles(self, tmp_path):
        cfg = load_config(_write(tmp_path, """
system_roles:
  owner:
    name: Founder
    color: "#FF0000"
  general:
    name: Everyone
    permissions: [ReadMessages, send_messages]
audit_enabled: false
"""))
        assert cfg.owner_role_name == "Founder"
        assert cfg.owner_role_color == "#FF0000"
        assert cfg.general_role_name == "Everyone"
        assert cfg.general_role_color == DEFAULT_CONFIG.general_role_color
        assert cfg.general_permissions == PermissionSet.of(
            Permission.READ_MESSAGES, Permission.SEND_MESSAGES
        )
        assert cfg.audit_enabled is False

    def test_unknown_permission_name(self, tmp_path):
        path = _write(tmp_path, "system_roles:\n  general:\n    permissions: [Teleport]\n")
        with pytest.raises(ValueError, match="Teleport"):
            load_config(path)

    def test_config_is_frozen(self):
        with pytest.raises(AttributeError):
            DEFAULT_CONFIG.audit_enabled = False  # type: ignore[misc]
