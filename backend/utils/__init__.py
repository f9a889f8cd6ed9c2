"""
Utils module for the upload automator.
"""

from .settings import AutomatorSettings
from .tracing import AutomationTracer, Span, Trace

__all__ = ["AutomatorSettings", "AutomationTracer", "Span", "Trace"]
