"""
Identity Bridge Module
Reads the signed-in user from the companion web-app page.
"""

from .identity import IdentityBridge

__all__ = ["IdentityBridge"]
