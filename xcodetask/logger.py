import os
from functools import lru_cache

from rich.console import Console
from rich.markup import escape

_debug_enabled = os.getenv("XCODETASK_DEBUG", "").lower() in ("1", "true", "yes")


@lru_cache(maxsize=1)
def get_console() -> Console:
    """Get or create the shared Console instance"""
    return Console()


def set_debug(enabled: bool) -> None:
    global _debug_enabled
    _debug_enabled = enabled


def is_debug() -> bool:
    return _debug_enabled


def debug(message: str) -> None:
    """Log a dimmed diagnostic line, only when debug output is enabled"""
    if _debug_enabled:
        get_console().log(f"[dim]{escape(message)}[/]")


def warning(message: str) -> None:
    get_console().print(f"[yellow]Warning: {escape(message)}[/]", highlight=False)
