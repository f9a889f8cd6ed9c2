"""
Page Agent data model - tasks, page context, results and errors.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class PageType(str, Enum):
    REGULAR_UPLOAD = "RegularUpload"
    STUDIO_UPLOAD = "StudioUpload"
    OTHER = "Other"


class LoginState(str, Enum):
    LOGGED_IN = "LoggedIn"
    LOGGED_OUT = "LoggedOut"
    UNKNOWN = "Unknown"


class ErrorKind(str, Enum):
    ELEMENT_NOT_FOUND = "ElementNotFound"
    TIMEOUT = "Timeout"
    NOT_LOGGED_IN = "NotLoggedIn"
    WRONG_PAGE = "WrongPage"
    NETWORK_ERROR = "NetworkError"
    UNKNOWN_ACTION = "UnknownAction"
    STILL_LOCKED = "StillLocked"
    UPLOAD_FAILED = "UploadFailed"
    TRANSPORT_ERROR = "TransportError"
    INVALID_REQUEST = "InvalidRequest"
    INTERNAL_ERROR = "InternalError"


class EditorKind(str, Enum):
    RICH_TEXT = "RichTextEditor"
    GENERIC_EDITABLE = "GenericEditable"
    PLAIN_INPUT = "PlainInput"


@dataclass(frozen=True)
class Task:
    """A single posting job. Its id is the webhook idempotency key."""
    id: str
    video_url: str
    caption: str
    product_id: Optional[str] = None
    target_account: Optional[str] = None

    @classmethod
    def from_upstream(cls, video: Dict[str, Any]) -> 'Task':
        """
        Build a task from an upstream video record.

        The caption falls back to "<title> - <price>" when no tone text exists.
        """
        caption = video.get("tone") or f"{video.get('title', '')} - {video.get('price', '')}"
        product_id = video.get("product_id") or video.get("productId")
        return cls(
            id=str(video["id"]),
            video_url=video.get("complete_video") or video.get("video_url", ""),
            caption=caption,
            product_id=str(product_id) if product_id else None,
            target_account=video.get("account") or video.get("targetAccount"),
        )

    def to_payload(self) -> Dict[str, Any]:
        """Wire payload for UPLOAD_VIDEO."""
        payload = {
            "taskId": self.id,
            "videoUrl": self.video_url,
            "caption": self.caption,
        }
        if self.product_id:
            payload["productId"] = self.product_id
        if self.target_account:
            payload["targetAccount"] = self.target_account
        return payload


@dataclass
class PageContext:
    url: str
    page_type: PageType
    login_state: LoginState = LoginState.UNKNOWN

    @property
    def is_upload_page(self) -> bool:
        return self.page_type != PageType.OTHER


@dataclass
class AutomationResult:
    """Uniform return value of every page agent operation."""
    success: bool
    message: Optional[str] = None
    error: Optional[ErrorKind] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, message: Optional[str] = None, **data) -> 'AutomationResult':
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, error: ErrorKind, message: str, **data) -> 'AutomationResult':
        return cls(success=False, message=message, error=error, data=data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire form sent across contexts."""
        result: Dict[str, Any] = {"success": self.success}
        if self.message is not None:
            result["message"] = self.message
        if self.error is not None:
            result["error"] = self.error.value
        result.update(self.data)
        return result


@dataclass
class EditorHandle:
    """The caption widget found on the page and the selector that matched it."""
    kind: EditorKind
    element: Any
    selector: str


class AutomatorError(Exception):
    """Base class for failures that carry their ErrorKind to the boundary."""

    kind = ErrorKind.INTERNAL_ERROR

    def to_result(self) -> AutomationResult:
        return AutomationResult.fail(self.kind, str(self))


class ElementNotFoundError(AutomatorError):
    kind = ErrorKind.ELEMENT_NOT_FOUND


class WaitTimeoutError(AutomatorError):
    kind = ErrorKind.TIMEOUT


class NetworkError(AutomatorError):
    kind = ErrorKind.NETWORK_ERROR


class UploadFailedError(AutomatorError):
    kind = ErrorKind.UPLOAD_FAILED
