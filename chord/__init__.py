"""
Chord — Guild Authorization & Channel Ordering Core
====================================================
The part of the Chord chat backend that decides who may touch which role,
resolves a member's effective permissions, and keeps channel positions
contiguous per (guild, channel type).  Everything else (messages, DMs,
uploads, voice tokens, real-time push) talks to it through the services
layer.

Package layout::

    chord/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Rank sentinels, system role names, limits
    ├── errors.py          # NotFound / Forbidden / Conflict / Validation
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + session + async helper
    │   └── models.py      # Guilds, members, roles, channels, audit log
    ├── engine/
    │   ├── permissions.py # Fixed-width permission bit-set
    │   └── sequencer.py   # Pure channel position arithmetic
    ├── services/
    │   ├── permission_service.py  # Effective permission resolution
    │   ├── hierarchy_service.py   # Role hierarchy authority checks
    │   ├── role_catalog.py        # Role + assignment data access
    │   ├── role_service.py        # Role mutations
    │   ├── channel_service.py     # Channel CRUD over the sequencer
    │   ├── guild_service.py       # Guild lookup, membership, bootstrap
    │   └── audit_service.py       # Fire-and-forget audit sink
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # Engine / config / audit / actor dependencies
        └── routes/        # Guild, role + channel endpoints
"""

__version__ = "0.1.0"
