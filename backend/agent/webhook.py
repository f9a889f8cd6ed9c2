"""
Success notification - the last-task marker and the at-most-once webhook.
"""

import json
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)


# (url, fetch options) -> FETCH_API style response dict
FetchTransport = Callable[[str, Dict[str, Any]], Awaitable[Dict[str, Any]]]


FIRED_HISTORY_LIMIT = 100


@dataclass
class RunContext:
    """Per-agent state for the task currently being posted."""
    current_task_id: Optional[str] = None
    # Most recent task ids whose webhook went out, oldest first
    fired_task_ids: "OrderedDict[str, None]" = field(default_factory=OrderedDict)
    fired_limit: int = FIRED_HISTORY_LIMIT

    def has_fired(self, task_id: str) -> bool:
        return task_id in self.fired_task_ids

    def mark_fired(self, task_id: str) -> None:
        self.fired_task_ids[task_id] = None
        self.fired_task_ids.move_to_end(task_id)
        while len(self.fired_task_ids) > self.fired_limit:
            self.fired_task_ids.popitem(last=False)


class LastTaskMarker:
    """The single task id persisted in page localStorage; survives navigation on the same origin."""

    def __init__(self, dom, key: str):
        self.dom = dom
        self.key = key

    async def get(self) -> Optional[str]:
        return await self.dom.local_storage_get(self.key)

    async def set(self, task_id: str) -> None:
        await self.dom.local_storage_set(self.key, task_id)

    async def clear(self) -> None:
        await self.dom.local_storage_remove(self.key)


def _iso_timestamp() -> str:
    now = datetime.now(timezone.utc)
    return now.strftime('%Y-%m-%dT%H:%M:%S.') + f"{now.microsecond // 1000:03d}Z"


class SuccessNotifier:
    """
    Fires the success webhook at most once per task id.

    The marker and the in-memory task id are cleared before the request is
    sent, so a failed request is never retried.
    """

    def __init__(
        self,
        dom,
        marker: LastTaskMarker,
        run: RunContext,
        transport: FetchTransport,
        webhook_url: str,
    ):
        self.dom = dom
        self.marker = marker
        self.run = run
        self.transport = transport
        self.webhook_url = webhook_url

    async def notify(self, detection_method: str, task_id: Optional[str] = None) -> bool:
        """Send the webhook for the active task. Returns False when nothing was sent."""
        task_id = task_id or self.run.current_task_id or await self.marker.get()
        if not task_id:
            logger.info(f"Success detected via {detection_method} but no task id is available")
            return False

        if self.run.has_fired(task_id):
            logger.debug(f"Webhook for task {task_id} already sent, skipping")
            await self.marker.clear()
            return False

        self.run.mark_fired(task_id)
        if self.run.current_task_id == task_id:
            self.run.current_task_id = None
        await self.marker.clear()

        payload = {
            "taskId": task_id,
            "status": "success",
            "timestamp": _iso_timestamp(),
            "url": await self.dom.url(),
            "detectionMethod": detection_method,
        }
        options = {
            "method": "POST",
            "headers": {"Content-Type": "application/json"},
            "body": json.dumps(payload),
        }

        logger.info(f"Sending success webhook for task {task_id} via {detection_method}...")
        try:
            response = await self.transport(self.webhook_url, options)
            logger.info(f"Webhook response for task {task_id}: status={response.get('status')}")
        except Exception as e:
            logger.error(f"Failed to send webhook for task {task_id}: {e}")
        return True
