"""
Page Agent Module
Classifies the upload page and performs every DOM interaction on it.
"""

from .models import (
    AutomationResult,
    AutomatorError,
    EditorKind,
    ErrorKind,
    LoginState,
    PageContext,
    PageType,
    Task,
)

__all__ = [
    "AutomationResult",
    "AutomatorError",
    "CommandRouter",
    "EditorKind",
    "ErrorKind",
    "LoginState",
    "PageAgent",
    "PageContext",
    "PageType",
    "Task",
]


def __getattr__(name):
    # PageAgent pulls in every step module; load it on first use
    if name == "PageAgent":
        from .page_agent import PageAgent
        return PageAgent
    elif name == "CommandRouter":
        from .router import CommandRouter
        return CommandRouter
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
