"""
chord.constants — Shared Constants
===================================

Single source of truth for the role-rank sentinels and field limits.
Import from here instead of duplicating in services and the API layer.

Role ranks are plain integers where a **lower** value means **more**
authority:

* ``OWNER_POSITION`` (0) — the Owner system role, always the top rank.
* ``GENERAL_POSITION`` (999) — the General system role, always the
  bottom rank.  A member with no role assignments at all is ranked here
  too, so a roleless member never outranks any custom role.
* Custom roles live strictly between the two: 1 … 998.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Role hierarchy sentinels
# ---------------------------------------------------------------------------
OWNER_POSITION = 0
GENERAL_POSITION = 999

MIN_CUSTOM_POSITION = OWNER_POSITION + 1
MAX_CUSTOM_POSITION = GENERAL_POSITION - 1

# ---------------------------------------------------------------------------
# Default system role presentation (overridable from config.yaml)
# ---------------------------------------------------------------------------
OWNER_ROLE_NAME = "owner"
GENERAL_ROLE_NAME = "general"
OWNER_ROLE_COLOR = "#E91E63"
GENERAL_ROLE_COLOR = "#9E9E9E"

# ---------------------------------------------------------------------------
# Field limits
# ---------------------------------------------------------------------------
ROLE_NAME_MAX_LENGTH = 100
CHANNEL_NAME_MAX_LENGTH = 100
CHANNEL_TOPIC_MAX_LENGTH = 500
GUILD_NAME_MAX_LENGTH = 100
