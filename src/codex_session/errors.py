"""Error types for codex-session.

Scan-time problems (stray files, malformed lines, unreadable rollouts) are
never raised; these exceptions cover the conditions that make a single
command meaningless.
"""


class CodexSessionError(Exception):
    """Base class for user-facing failures."""

    def __init__(self, message: str, code: str = "error"):
        super().__init__(message)
        self.code = code


class SessionNotFoundError(CodexSessionError):
    """Raised when a path or session id resolves to nothing."""

    def __init__(self, query: str, message: str | None = None):
        super().__init__(message or f"No session found for {query}", code="not_found")
        self.query = query


class CodexHomeError(CodexSessionError):
    def __init__(self, message: str):
        super().__init__(message, code="codex_home")


class ConfigError(CodexSessionError):
    def __init__(self, message: str):
        super().__init__(message, code="config")


class ExportError(CodexSessionError):
    def __init__(self, message: str):
        super().__init__(message, code="export")
