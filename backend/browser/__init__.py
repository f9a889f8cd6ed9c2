"""
Browser Automation Module
Playwright browser lifecycle and the DOM facade the page agent works through.
"""

from .controller import BrowserController
from .dom import PageDom

__all__ = [
    "BrowserController",
    "PageDom",
]
