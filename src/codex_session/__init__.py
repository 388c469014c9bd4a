"""codex-session - Manage recorded Codex conversation sessions.

Modules:
    - sessions: Catalog engine over the date-sharded rollout tree
      (keyset pagination, head summaries, resolve/detail/delete/export)
    - tui: Interactive session browser (search, delete, resume, export)
    - config: Codex home resolution and user settings
    - cli: `codex-session` command line
"""

__version__ = "0.3.0"
