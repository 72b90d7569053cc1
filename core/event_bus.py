"""
Event bus for invoicing domain events.

Synchronous in-process pub/sub. Handlers execute immediately in the same
thread as the publisher. Handler errors are logged but never propagate:
the invoice write and its activity entries have already committed.
"""

import logging
from typing import Callable, Dict, List, Type

from core.events import InvoicingEvent

logger = logging.getLogger(__name__)


def _event_name(event_type: Type[InvoicingEvent] | str) -> str:
    return event_type if isinstance(event_type, str) else event_type.__name__


class EventBus:
    """
    In-process event bus for invoicing domain events.

    Subscribe by event class (or its name), publish by event instance.
    Delivery matches the exact class: subscribing to InvoiceEvent does not
    receive InvoicePaid.

    Usage:
        bus = EventBus()
        bus.subscribe(InvoicePaid, send_receipt)
        bus.publish(InvoicePaid.create(invoice=invoice, payment_amount=amount))
    """

    def __init__(self):
        self._subscribers: Dict[str, List[Callable]] = {}

    def subscribe(self, event_type: Type[InvoicingEvent] | str, callback: Callable):
        """
        Subscribe to events of a specific type.

        Args:
            event_type: Event class, or its name (e.g. 'InvoicePaid')
            callback: Function to call when event is published
        """
        self._subscribers.setdefault(_event_name(event_type), []).append(callback)

    def subscribers(self, event_type: Type[InvoicingEvent] | str) -> List[Callable]:
        """Handlers registered for an event type, in call order."""
        return list(self._subscribers.get(_event_name(event_type), []))

    def publish(self, event: InvoicingEvent) -> int:
        """
        Publish an event to all subscribers of that type.

        Args:
            event: InvoicingEvent instance to publish

        Returns:
            Number of handlers that raised
        """
        event_type = event.__class__.__name__
        failures = 0

        for callback in self._subscribers.get(event_type, []):
            try:
                callback(event)
            except Exception:
                failures += 1
                logger.exception(
                    "Handler %s failed for %s (event_id=%s)",
                    getattr(callback, "__name__", repr(callback)),
                    event_type,
                    event.event_id,
                )

        return failures
