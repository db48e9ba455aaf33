"""
Lifecycle event system.

The controller publishes one LifecycleEvent per protocol operation
(success or denial) and one per admin reset. A presentation layer
subscribes and decides how to react (pulse, animate, re-render).
The core never renders anything itself.
"""

import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from latch_escrow.core.models import Operation, Role

logger = logging.getLogger("latch.escrow.events")


class EventType(Enum):
    """Types of observable lifecycle events."""
    VAULT_CREATED  = "vault_created"
    VAULT_FUNDED   = "vault_funded"
    VAULT_RELEASED = "vault_released"
    VAULT_REFUNDED = "vault_refunded"
    VAULT_DELETED  = "vault_deleted"
    DENIED         = "denied"
    RESET          = "reset"


@dataclass(frozen=True)
class LifecycleEvent:
    """
    Observable result of a controller call.

    selected is True when the presentation layer should treat vault_id as
    the newly selected vault (after create_draft).
    """
    event_id:   str
    timestamp:  int
    event_type: EventType
    operation:  Optional[Operation]
    role:       Optional[Role]
    vault_id:   Optional[str]
    message:    str
    selected:   bool = False

    @property
    def ok(self) -> bool:
        return self.event_type != EventType.DENIED

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "event_id":   self.event_id,
            "timestamp":  self.timestamp,
            "event_type": self.event_type.value,
            "message":    self.message,
            "selected":   self.selected,
        }
        if self.operation:
            data["operation"] = self.operation.value
        if self.role:
            data["role"] = self.role.value
        if self.vault_id:
            data["vault_id"] = self.vault_id
        return data


def generate_event_id() -> str:
    return f"evt-{uuid.uuid4()}"


Subscriber = Callable[[LifecycleEvent], None]


class EventBus:
    """
    Synchronous fan-out to subscribers, in subscription order.

    State is committed before publish() runs, so a subscriber that raises
    is logged and skipped; the remaining subscribers still run and the
    caller still gets its result.
    """

    def __init__(self) -> None:
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register callback. Returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def publish(self, event: LifecycleEvent) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "Subscriber %r failed on %s event %s",
                    callback, event.event_type.value, event.event_id,
                )

    def __len__(self) -> int:
        return len(self._subscribers)
