"""
Target Site Configurations
"""

from .base import TargetConfig
from .tiktok import TIKTOK_CONFIG

__all__ = [
    "TargetConfig",
    "TIKTOK_CONFIG",
]
