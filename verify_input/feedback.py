"""
Feedback sinks - where a failed verification pass reports its message.

The engine calls notify() at most once per pass. A UI layer would render the
message as a toast or dialog; headless callers use one of the sinks below.
"""

import logging
from typing import Callable, List, Protocol

logger = logging.getLogger(__name__)


class FeedbackSink(Protocol):
    """Anything with a notify(message) method."""

    def notify(self, message: str) -> None:
        ...


class NullFeedbackSink:
    """Discards every message."""

    def notify(self, message: str) -> None:
        pass


class CollectingFeedbackSink:
    """Keeps messages in order of arrival (useful in tests)."""

    def __init__(self):
        self.messages: List[str] = []

    def notify(self, message: str) -> None:
        self.messages.append(message)

    def clear(self) -> None:
        self.messages.clear()


class LoggingFeedbackSink:
    """Writes each message to the verify_input.feedback logger."""

    def __init__(self, level: int = logging.WARNING):
        self.level = level

    def notify(self, message: str) -> None:
        logger.log(self.level, message)


class CallbackFeedbackSink:
    """Adapts a plain callable, e.g. a UI toast function."""

    def __init__(self, callback: Callable[[str], None]):
        self.callback = callback

    def notify(self, message: str) -> None:
        self.callback(message)
