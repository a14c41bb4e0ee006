"""ZFS-root Gentoo installer (state-driven, fail-fast).

Core design goals:
- One immutable install plan, collected before anything runs
- Numbered steps with persisted progress
- Deterministic partition naming and storage layout
- Mirror fallback with artifact sanity checks
- Centralized logging, credentials never logged
"""

__all__ = []
