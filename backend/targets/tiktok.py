"""
TikTok Configuration
Markup knowledge for the TikTok upload and TikTok Studio upload pages.
"""

from .base import TargetConfig


TIKTOK_ORIGIN = "https://www.tiktok.com"


TIKTOK_CONFIG = TargetConfig(
    name="TikTok",
    origin=TIKTOK_ORIGIN,

    # Both forms also accept a trailing slash and any query string
    upload_paths={
        "RegularUpload": ["/upload"],
        "StudioUpload": ["/tiktokstudio/upload"],
    },

    # Studio redirects here once a post went through
    success_location="/tiktokstudio/content",
    studio_marker="tiktokstudio",

    login_phrases=["log in", "sign in", "login"],
    upload_phrases=["upload", "post", "publish"],

    logged_in_markers=[
        '"isLoggedIn":true',
        '"loggedIn":true',
        "isAuthenticated",
    ],
    session_storage_keys=["tt-target-id", "sid_tt"],

    success_phrases=[
        "Post successful",
        "Your video is being uploaded",
        "Manage your posts",
        "View post",
        "Post another video",
    ],
    success_modal_words=["successful", "uploaded"],

    marker_key="tt_automator_last_task_id",

    cookie_domain=".tiktok.com",
)
