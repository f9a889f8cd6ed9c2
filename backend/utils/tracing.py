"""
Tracing module for the upload automator.
One trace per relayed command, one span per step inside it.
"""

import time
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, Tuple
from contextlib import contextmanager
from contextvars import ContextVar

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 100


@dataclass
class Span:
    """A single traced step."""
    name: str
    start_time: float = field(default_factory=time.time)
    end_time: float = 0
    duration_ms: float = 0
    metadata: Dict[str, Any] = field(default_factory=dict)
    success: bool = True
    error: Optional[str] = None

    def finish(self, success: bool = True, error: Optional[str] = None):
        self.end_time = time.time()
        self.duration_ms = (self.end_time - self.start_time) * 1000
        self.success = success
        self.error = error

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "duration_ms": round(self.duration_ms, 2),
            "success": self.success,
            "error": self.error,
            **self.metadata
        }


@dataclass
class Trace:
    """Everything recorded while one command ran."""
    trace_id: str
    action: str
    start_time: float = field(default_factory=time.time)
    end_time: float = 0
    total_ms: float = 0
    success: bool = True
    error: Optional[str] = None
    spans: List[Span] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def finish(self, success: bool = True, error: Optional[str] = None):
        self.end_time = time.time()
        self.total_ms = (self.end_time - self.start_time) * 1000
        self.success = success
        self.error = error

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trace_id": self.trace_id,
            "action": self.action,
            "success": self.success,
            "error": self.error,
            "total_ms": round(self.total_ms, 2),
            "spans": [s.to_dict() for s in self.spans],
            "breakdown": self._get_breakdown(),
            **self.metadata
        }

    def _get_breakdown(self) -> Dict[str, float]:
        """Time per span name; repeated names are summed."""
        breakdown: Dict[str, float] = {}
        for span in self.spans:
            breakdown[span.name] = breakdown.get(span.name, 0) + span.duration_ms
        return {k: round(v, 2) for k, v in breakdown.items()}


class AutomationTracer:
    """
    Records how long each command and each of its steps took, and whether it worked.

    Commands nest: POST_VIDEO on the coordinator relays UPLOAD_VIDEO to a
    page agent, and the inner command gets its own trace while the outer
    one stays open underneath it. Open commands are tracked per asyncio
    task, so commands arriving concurrently (HTTP and WebSocket) each see
    only their own trace.

    Usage:
        tracer = AutomationTracer()

        trace_id = tracer.start_command("SET_CAPTION", context="page-agent")
        with tracer.span("caption_clear"):
            ...
        trace = tracer.end_command(success=True, trace_id=trace_id)
    """

    def __init__(self, history_limit: int = HISTORY_LIMIT):
        self.history: List[Dict[str, Any]] = []
        self.history_limit = history_limit
        self._open: ContextVar[Tuple[Trace, ...]] = ContextVar(f"open_traces_{id(self)}", default=())
        self._counter = 0

    @property
    def current_trace(self) -> Optional[Trace]:
        stack = self._open.get()
        return stack[-1] if stack else None

    def start_command(self, action: str, **metadata) -> str:
        self._counter += 1
        trace_id = f"cmd_{int(time.time() * 1000)}_{self._counter}"
        stack = self._open.get() + (Trace(trace_id=trace_id, action=action, metadata=metadata),)
        self._open.set(stack)
        logger.debug(f"Started trace: {trace_id} ({action}, depth {len(stack)})")
        return trace_id

    @contextmanager
    def span(self, name: str, **metadata):
        """Time the enclosed block as a span of the innermost open command."""
        trace = self.current_trace
        if trace is None:
            yield
            return

        span = Span(name=name, metadata=metadata)
        try:
            yield span
            span.finish(success=True)
        except Exception as e:
            span.finish(success=False, error=str(e))
            raise
        finally:
            trace.spans.append(span)

    def end_command(
        self,
        success: bool = True,
        error: Optional[str] = None,
        trace_id: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """Finish a command (the innermost one unless trace_id names another), log it, and move it to history."""
        stack = self._open.get()
        if trace_id is None:
            trace = stack[-1] if stack else None
        else:
            trace = next((t for t in stack if t.trace_id == trace_id), None)
        if trace is None:
            return None

        self._open.set(tuple(t for t in stack if t is not trace))
        trace.finish(success=success, error=error)
        trace_dict = trace.to_dict()

        logger.info(
            f"Command complete: {trace_dict['action']} ({trace_dict['trace_id']}) | "
            f"success={trace_dict['success']} error={trace_dict['error']} | "
            f"Total: {trace_dict['total_ms']:.0f}ms | "
            f"Breakdown: {trace_dict['breakdown']}"
        )

        self.history.append(trace_dict)
        if len(self.history) > self.history_limit:
            self.history = self.history[-self.history_limit:]

        return trace_dict

    def get_stats(self) -> Dict[str, Any]:
        """Aggregate statistics over the trace history."""
        if not self.history:
            return {"commands": 0}

        total_times = [t["total_ms"] for t in self.history]
        failures = [t for t in self.history if not t["success"]]

        return {
            "commands": len(self.history),
            "succeeded": len(self.history) - len(failures),
            "failed": len(failures),
            "by_action": dict(Counter(t["action"] for t in self.history)),
            "errors": dict(Counter(t["error"] for t in failures if t["error"])),
            "avg_total_ms": round(sum(total_times) / len(total_times), 2),
            "min_total_ms": round(min(total_times), 2),
            "max_total_ms": round(max(total_times), 2),
            "last_trace": self.history[-1],
        }
