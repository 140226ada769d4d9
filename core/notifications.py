"""
FORMCOACH Feedback Sinks

Delivery targets for feedback events (voice prompt, on-screen banner, ...).
The evaluation core only calls send(); failures are handled by the
dispatcher.
"""

import logging
from collections import deque
from typing import TYPE_CHECKING, Any, Callable, Deque, Dict, List, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from evaluation_service.models.schemas import FeedbackEvent

logger = logging.getLogger(__name__)


@runtime_checkable
class FeedbackSink(Protocol):
    """Anything that can deliver a feedback event."""

    def send(self, event: "FeedbackEvent") -> None:
        ...


class LoggingFeedbackSink:
    """
    Mock-mode sink: events are logged only.

    Keeps the most recent events so tests and debugging tools can inspect
    what would have been spoken.
    """

    def __init__(self, max_events: int = 100):
        self.events: Deque["FeedbackEvent"] = deque(maxlen=max_events)
        self._sent_count = 0

    def send(self, event: "FeedbackEvent") -> None:
        logger.info(f"🔊 [MOCK] Feedback {event.message_code}: {event.text}")
        self.events.append(event)
        self._sent_count += 1

    @property
    def message_codes(self) -> List[str]:
        return [event.message_code for event in self.events]

    def clear(self):
        self.events.clear()

    def get_stats(self) -> Dict[str, Any]:
        return {
            "mock_mode": True,
            "sent_count": self._sent_count,
            "buffered": len(self.events),
        }


class CallbackFeedbackSink:
    """Adapts any callable (voice engine, UI store update, ...) to a sink."""

    def __init__(self, callback: Callable[["FeedbackEvent"], Any]):
        self.callback = callback

    def send(self, event: "FeedbackEvent") -> None:
        self.callback(event)


# Global default sink
_default_sink: Optional[LoggingFeedbackSink] = None


def get_default_sink() -> LoggingFeedbackSink:
    """Get or create the shared mock-mode sink."""
    global _default_sink
    if _default_sink is None:
        _default_sink = LoggingFeedbackSink()
    return _default_sink
