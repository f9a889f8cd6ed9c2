"""
Coordinator Module
Message routing, outbound HTTP, cookies and the auxiliary window.
"""

from .coordinator import Coordinator, CoordinatorSession
from .fetch import FetchRelay
from .panel import ControllerPanel

__all__ = [
    "Coordinator",
    "CoordinatorSession",
    "ControllerPanel",
    "FetchRelay",
]
