"""
Notifications emitted by the royalty flow.

Events are plain dataclasses published on an in-process bus after the state
change they describe has been committed. Subscribers are typically indexers
or the external payment rail.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class ContributionRecorded:
    contribution_id: int
    contributor_key: bytes
    timestamp: datetime

@dataclass(frozen=True)
class RoyaltyRevealed:
    contribution_id: int
    contributor_key: bytes
    request_id: str

@dataclass(frozen=True)
class ClaimSettled:
    contributor_key: bytes
    payment_amount: int
    request_id: str

@dataclass(frozen=True)
class RequestExpired:
    request_id: str
    kind: str
    context: str

Handler = Callable[[object], None]

class EventBus:
    """Synchronous publish/subscribe for royalty events"""

    def __init__(self):
        self._handlers: List[Handler] = []

    def subscribe(self, handler: Handler) -> None:
        self._handlers.append(handler)

    def unsubscribe(self, handler: Handler) -> None:
        self._handlers.remove(handler)

    def emit(self, event: object) -> None:
        """
        Deliver an event to every subscriber.

        The state change is already committed when this runs, so a failing
        subscriber is logged and does not stop delivery to the others.
        """
        logger.debug(f"Emitting {type(event).__name__}")
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Event handler {handler!r} failed on {type(event).__name__}: {e}")
