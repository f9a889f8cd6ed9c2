"""
Command Router - routes relayed {action, data} messages to handlers.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from .models import AutomationResult, AutomatorError, ErrorKind

logger = logging.getLogger(__name__)


HandlerResult = Union[AutomationResult, Dict[str, Any]]
Handler = Callable[[Dict[str, Any]], Awaitable[HandlerResult]]


class CommandRouter:
    """
    Routes commands to registered handlers.

    Handles:
    - Alias resolution (several action names for one handler)
    - Converting every outcome to a plain result dict
    - Turning exceptions into failure results so nothing escapes a context
    """

    def __init__(self, name: str = "router", tracer=None):
        self.name = name
        self.tracer = tracer
        self._handlers: Dict[str, Handler] = {}
        self._aliases: Dict[str, str] = {}

    def register_handler(self, action: str, handler: Handler, aliases: tuple = ()) -> None:
        self._handlers[action] = handler
        for alias in aliases:
            self._aliases[alias] = action

    def resolve(self, action: Optional[str]) -> Optional[str]:
        if action in self._handlers:
            return action
        return self._aliases.get(action)

    @property
    def actions(self) -> list:
        return sorted(self._handlers) + sorted(self._aliases)

    async def execute(self, action: Optional[str], data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Execute a command.

        Args:
            action: Action name, e.g. "SET_CAPTION"
            data: Command payload

        Returns:
            Result dictionary with success status and details
        """
        logger.info(f"[{self.name}] Executing action: {action}")

        resolved = self.resolve(action)
        if resolved is None:
            logger.warning(f"[{self.name}] Unknown action: {action}")
            return AutomationResult.fail(
                ErrorKind.UNKNOWN_ACTION,
                f"Unknown action: {action}",
                receivedAction=action,
            ).to_dict()

        trace_id = None
        if self.tracer is not None:
            trace_id = self.tracer.start_command(resolved, context=self.name)

        try:
            result = await self._handlers[resolved](data or {})
        except AutomatorError as e:
            logger.error(f"[{self.name}] {resolved} failed: {e}")
            result = e.to_result()
        except Exception as e:
            logger.error(f"[{self.name}] {resolved} raised unexpectedly: {e}", exc_info=True)
            result = AutomationResult.fail(ErrorKind.INTERNAL_ERROR, str(e) or type(e).__name__)

        response = result.to_dict() if isinstance(result, AutomationResult) else result

        if self.tracer is not None:
            self.tracer.end_command(
                success=bool(response.get("success")),
                error=response.get("error"),
                trace_id=trace_id,
            )

        return response
