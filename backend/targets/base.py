"""
Target Configuration Base - Define what the automator knows about a target site.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional
import json


@dataclass
class TargetConfig:
    """
    Markup knowledge for one target web application.

    This class defines:
    - Basic site info (name, origin)
    - Upload page paths used to classify the page
    - The location a successful post redirects to
    - Phrase lists used by the login and success heuristics
    - Cookie defaults applied by the coordinator
    """

    # Basic info
    name: str
    origin: str

    # Upload pages - compared against the URL path only
    # Example: {"RegularUpload": ["/upload"], "StudioUpload": ["/tiktokstudio/upload"]}
    upload_paths: Dict[str, List[str]] = field(default_factory=dict)

    # Path fragment of the "post successfully redirected" location
    success_location: str = ""

    # URL fragment that marks the studio variant of the page
    studio_marker: str = ""

    # Phrases (lowercase) that identify a login / sign-in control
    login_phrases: List[str] = field(default_factory=list)

    # Phrases (lowercase) that identify upload-capable controls
    upload_phrases: List[str] = field(default_factory=list)

    # Page-state strings that indicate an authenticated session
    logged_in_markers: List[str] = field(default_factory=list)

    # localStorage keys that only exist for authenticated sessions
    session_storage_keys: List[str] = field(default_factory=list)

    # Visible text shown after a successful post
    success_phrases: List[str] = field(default_factory=list)

    # Words that make a confirmation dialog count as a success dialog
    success_modal_words: List[str] = field(default_factory=list)

    # localStorage key of the single last-task marker
    marker_key: str = "tt_automator_last_task_id"

    # Domain given to injected cookies that do not name one
    cookie_domain: str = ""

    # Name of the file handed to the upload input
    upload_file_name: str = "video.mp4"
    upload_mime_type: str = "video/mp4"

    def page_type_for_path(self, path: str) -> Optional[str]:
        """Return the page type whose upload path matches, trailing slash tolerated."""
        normalized = path.rstrip('/') or '/'
        for page_type, paths in self.upload_paths.items():
            for candidate in paths:
                if normalized == (candidate.rstrip('/') or '/'):
                    return page_type
        return None

    def to_dict(self) -> Dict:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "origin": self.origin,
            "upload_paths": self.upload_paths,
            "success_location": self.success_location,
            "studio_marker": self.studio_marker,
            "login_phrases": self.login_phrases,
            "upload_phrases": self.upload_phrases,
            "logged_in_markers": self.logged_in_markers,
            "session_storage_keys": self.session_storage_keys,
            "success_phrases": self.success_phrases,
            "success_modal_words": self.success_modal_words,
            "marker_key": self.marker_key,
            "cookie_domain": self.cookie_domain,
            "upload_file_name": self.upload_file_name,
            "upload_mime_type": self.upload_mime_type,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'TargetConfig':
        """Create from dictionary."""
        return cls(
            name=data.get("name", ""),
            origin=data.get("origin", ""),
            upload_paths=data.get("upload_paths", {}),
            success_location=data.get("success_location", ""),
            studio_marker=data.get("studio_marker", ""),
            login_phrases=data.get("login_phrases", []),
            upload_phrases=data.get("upload_phrases", []),
            logged_in_markers=data.get("logged_in_markers", []),
            session_storage_keys=data.get("session_storage_keys", []),
            success_phrases=data.get("success_phrases", []),
            success_modal_words=data.get("success_modal_words", []),
            marker_key=data.get("marker_key", "tt_automator_last_task_id"),
            cookie_domain=data.get("cookie_domain", ""),
            upload_file_name=data.get("upload_file_name", "video.mp4"),
            upload_mime_type=data.get("upload_mime_type", "video/mp4"),
        )

    @classmethod
    def from_json_file(cls, file_path: str) -> 'TargetConfig':
        """Load configuration from JSON file."""
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return cls.from_dict(data)

    def save_to_json(self, file_path: str) -> None:
        """Save configuration to JSON file."""
        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
