"""
Page Classifier - page type from the URL path, login state from DOM signals.

Login detection is a heuristic: it scrapes visible text and markup that the
target site changes without notice, so it can report false results.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict
from urllib.parse import urlparse

from targets.base import TargetConfig
from .models import LoginState, PageContext, PageType
from .rules import LocatorRule, any_match, text_contains_any

logger = logging.getLogger(__name__)


LOGIN_CONTROL_SELECTORS = [
    '[data-e2e="login-button"]',
    '[data-e2e="login"]',
    'button[data-e2e*="login"]',
    'a[href*="login"]',
    "button",
    'a[role="button"]',
]

UPLOAD_CONTROL_SELECTORS = [
    '[data-e2e="upload-btn"]',
    'button[data-e2e*="upload"]',
    'button[aria-label*="upload"]',
    "button",
]

AVATAR_SELECTOR = '[data-e2e="user-avatar"], [data-e2e="avatar"], img[alt*="avatar"], .avatar'
USER_MENU_SELECTOR = '[data-e2e="user-menu"], [data-e2e="menu"], [aria-label*="menu"]'
PROFILE_LINK_SELECTOR = '[href*="/@"]:not([href*="tiktok.com/@tiktok"])'
DROPDOWN_SELECTOR = '[data-e2e="dropdown-menu"], [role="menu"]'
STUDIO_ELEMENTS_SELECTOR = '.tiktok-studio, [data-e2e*="studio"]'
STUDIO_USER_INFO_SELECTOR = '[data-e2e="user-info"], .user-info'
ENABLED_FILE_INPUT_SELECTOR = 'input[type="file"]:not([disabled])'

FILE_INPUT_SELECTOR = 'input[type="file"]'
CAPTION_INPUT_SELECTOR = 'textarea, [contenteditable="true"]'

POST_PHRASES = ["post", "publish"]


def classify_url(url: str, config: TargetConfig) -> PageType:
    """Page type from the URL path alone; query string and fragment are ignored."""
    path = urlparse(url).path
    matched = config.page_type_for_path(path)
    if matched is None:
        return PageType.OTHER
    return PageType(matched)


@dataclass
class LoginStatus:
    """Raw signals plus the derived login state."""
    login_state: LoginState
    has_login_button: bool
    has_upload_button: bool
    has_user_avatar: bool
    has_user_menu: bool
    has_user_profile: bool
    has_user_dropdown: bool
    has_studio_elements: bool
    has_logged_in_ui: bool
    is_studio_page: bool
    url: str

    @property
    def is_logged_in(self) -> bool:
        return self.login_state == LoginState.LOGGED_IN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isLoggedIn": self.is_logged_in,
            "loginState": self.login_state.value,
            "hasLoginButton": self.has_login_button,
            "hasUploadButton": self.has_upload_button,
            "hasUserAvatar": self.has_user_avatar,
            "hasUserMenu": self.has_user_menu,
            "hasUserProfile": self.has_user_profile,
            "hasUserDropdown": self.has_user_dropdown,
            "hasStudioElements": self.has_studio_elements,
            "hasLoggedInUI": self.has_logged_in_ui,
            "isStudioPage": self.is_studio_page,
            "url": self.url,
        }


class PageClassifier:
    """Resolves PageContext for the current page. Nothing is cached."""

    def __init__(self, dom, config: TargetConfig):
        self.dom = dom
        self.config = config

        self._login_rules = [
            LocatorRule(selector, text_contains_any(config.login_phrases))
            for selector in LOGIN_CONTROL_SELECTORS
        ]
        self._upload_rules = [
            LocatorRule(selector, text_contains_any(config.upload_phrases))
            for selector in UPLOAD_CONTROL_SELECTORS
        ]
        self._post_button_rules = [LocatorRule("button", text_contains_any(POST_PHRASES))]

    async def _exists(self, selector: str) -> bool:
        return await self.dom.query(selector) is not None

    async def _has_logged_in_ui(self) -> bool:
        for marker in self.config.logged_in_markers:
            if await self.dom.html_contains(marker):
                return True
        for key in self.config.session_storage_keys:
            if await self.dom.local_storage_get(key):
                return True
        return False

    async def check_login_status(self) -> LoginStatus:
        url = await self.dom.url()

        has_login_button = await any_match(self.dom, self._login_rules)
        has_user_avatar = await self._exists(AVATAR_SELECTOR)
        has_user_menu = await self._exists(USER_MENU_SELECTOR)
        has_user_profile = await self._exists(PROFILE_LINK_SELECTOR)
        has_user_dropdown = await self._exists(DROPDOWN_SELECTOR)
        has_upload_button = await any_match(self.dom, self._upload_rules)
        has_studio_elements = await self._exists(STUDIO_ELEMENTS_SELECTOR)
        has_logged_in_ui = await self._has_logged_in_ui()

        is_studio_page = bool(self.config.studio_marker) and self.config.studio_marker in url

        if is_studio_page:
            # Studio markup differs structurally, so it has its own positive signals
            positive = (
                await self._exists(STUDIO_USER_INFO_SELECTOR)
                or await self._exists(ENABLED_FILE_INPUT_SELECTOR)
                or await any_match(self.dom, self._post_button_rules)
                or has_user_avatar
                or has_user_menu
                or has_user_profile
            )
        else:
            positive = (
                has_upload_button
                or has_user_avatar
                or has_user_menu
                or has_user_profile
                or has_user_dropdown
                or has_logged_in_ui
            )

        if has_login_button:
            login_state = LoginState.LOGGED_OUT
        elif positive:
            login_state = LoginState.LOGGED_IN
        else:
            login_state = LoginState.UNKNOWN

        logger.debug(f"Login state {login_state.value} (studio={is_studio_page}, login_button={has_login_button})")

        return LoginStatus(
            login_state=login_state,
            has_login_button=has_login_button,
            has_upload_button=has_upload_button,
            has_user_avatar=has_user_avatar,
            has_user_menu=has_user_menu,
            has_user_profile=has_user_profile,
            has_user_dropdown=has_user_dropdown,
            has_studio_elements=has_studio_elements,
            has_logged_in_ui=has_logged_in_ui,
            is_studio_page=is_studio_page,
            url=url,
        )

    async def get_page_info(self) -> Dict[str, Any]:
        url = await self.dom.url()
        page_type = classify_url(url, self.config)
        return {
            "url": url,
            "title": await self.dom.title(),
            "pageType": page_type.value,
            "isUploadPage": page_type != PageType.OTHER,
            "hasVideoInput": await self._exists(FILE_INPUT_SELECTOR),
            "hasCaptionInput": await self._exists(CAPTION_INPUT_SELECTOR),
            "timestamp": int(time.time() * 1000),
        }

    async def resolve(self) -> PageContext:
        """Full PageContext: URL, page type and login state."""
        url = await self.dom.url()
        page_type = classify_url(url, self.config)
        status = await self.check_login_status()
        return PageContext(url=url, page_type=page_type, login_state=status.login_state)
