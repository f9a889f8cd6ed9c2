"""
Runtime settings for the automator, read from the environment.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    return float(value)


@dataclass
class AutomatorSettings:
    """
    Process-wide settings.

    Timeouts are in seconds. The webhook URL is the single endpoint that
    receives post-success notifications.
    """

    webhook_url: str = "http://localhost:5678/webhook/tiktok-post-success"
    app_url: str = "http://localhost:3000"
    upload_url: str = "https://www.tiktok.com/upload"

    headless: bool = False
    viewport_width: int = 1280
    viewport_height: int = 800

    # Auxiliary always-on-top window
    aux_window_url: str = "about:blank"
    aux_window_width: int = 450
    aux_window_height: int = 650

    element_timeout_s: float = 10.0
    success_poll_interval_s: float = 2.0
    success_timeout_s: float = 60.0
    fetch_timeout_s: float = 30.0

    host: str = "0.0.0.0"
    port: int = 8000

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> 'AutomatorSettings':
        """Load settings from environment variables (and a .env file if present)."""
        load_dotenv(env_file)
        defaults = cls()
        return cls(
            webhook_url=os.getenv("TT_AUTOMATOR_WEBHOOK_URL", defaults.webhook_url),
            app_url=os.getenv("TT_AUTOMATOR_APP_URL", defaults.app_url),
            upload_url=os.getenv("TT_AUTOMATOR_UPLOAD_URL", defaults.upload_url),
            headless=_env_bool("TT_AUTOMATOR_HEADLESS", defaults.headless),
            viewport_width=int(os.getenv("TT_AUTOMATOR_VIEWPORT_WIDTH", defaults.viewport_width)),
            viewport_height=int(os.getenv("TT_AUTOMATOR_VIEWPORT_HEIGHT", defaults.viewport_height)),
            aux_window_url=os.getenv("TT_AUTOMATOR_AUX_WINDOW_URL", defaults.aux_window_url),
            element_timeout_s=_env_float("ELEMENT_TIMEOUT_S", defaults.element_timeout_s),
            success_poll_interval_s=_env_float("SUCCESS_POLL_INTERVAL_S", defaults.success_poll_interval_s),
            success_timeout_s=_env_float("SUCCESS_TIMEOUT_S", defaults.success_timeout_s),
            fetch_timeout_s=_env_float("FETCH_TIMEOUT_S", defaults.fetch_timeout_s),
            host=os.getenv("HOST", defaults.host),
            port=int(os.getenv("PORT", defaults.port)),
        )
