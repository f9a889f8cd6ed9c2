"""
Video upload - hand the task's video to the page's file input.
"""

import logging
from typing import Awaitable, Callable

from targets.base import TargetConfig
from .clock import Clock
from .models import AutomationResult, UploadFailedError
from .rules import wait_for_element

logger = logging.getLogger(__name__)


FILE_INPUT_SELECTOR = 'input[type="file"]'
UPLOAD_ERROR_SELECTOR = '[data-e2e="upload-error"]'

UPLOAD_SETTLE_S = 3.0

# url -> file bytes; raises NetworkError
Downloader = Callable[[str], Awaitable[bytes]]


async def upload_video(
    dom,
    video_url: str,
    download: Downloader,
    clock: Clock,
    config: TargetConfig,
    element_timeout_s: float = 10.0,
) -> AutomationResult:
    logger.info(f"Uploading video from URL: {video_url}")

    file_input = await wait_for_element(dom, FILE_INPUT_SELECTOR, clock, timeout_s=element_timeout_s)

    data = await download(video_url)
    logger.info(f"Downloaded {len(data)} bytes, attaching as {config.upload_file_name}")

    await dom.set_input_files(file_input, config.upload_file_name, config.upload_mime_type, data)

    await clock.sleep(UPLOAD_SETTLE_S)

    upload_error = await dom.query(UPLOAD_ERROR_SELECTOR)
    if upload_error is not None:
        text = await dom.text_content(upload_error)
        raise UploadFailedError(f"Upload error detected: {text}")

    return AutomationResult.ok("Video uploaded successfully", bytes=len(data))
