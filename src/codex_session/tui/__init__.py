"""Interactive session browser.

A modal terminal UI over a page of catalog results: incremental search,
"dd" delete with confirmation, an action menu (resume / jump), and
inline export via ":export PATH".
"""

from codex_session.tui.app import BrowserApp, render, run_browser
from codex_session.tui.browser import ActionKind, Browser, BrowserAction, Mode

__all__ = [
    "ActionKind",
    "Browser",
    "BrowserAction",
    "BrowserApp",
    "Mode",
    "render",
    "run_browser",
]
