from datetime import datetime
from typing import Callable, Dict, List, NamedTuple

from portal.logging_config import get_logger

__all__ = ['PAYMENT_POSTED', 'PERIOD_PAID', 'BALANCE_CLEARED', 'Event', 'EventBus', 'register_default_handlers']

logger = get_logger(__name__)

PAYMENT_POSTED = "PAYMENT_POSTED"
PERIOD_PAID = "PERIOD_PAID"
BALANCE_CLEARED = "BALANCE_CLEARED"


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


class EventBus:
    def __init__(self):
        self._subscribers: Dict[str, List[Callable[[Event, dict], dict]]] = {}

    def subscribe(self, name: str, handler: Callable[[Event, dict], dict]) -> None:
        self._subscribers.setdefault(name, []).append(handler)

    def publish(self, name: str, payload: dict) -> List[dict]:
        handlers = self._subscribers.get(name, [])
        if not handlers:
            return []

        event = Event(name=name, ts=datetime.now().isoformat(), payload=payload)
        return [handler(event, payload) for handler in list(handlers)]

    def unsubscribe(self, name: str, handler: Callable[[Event, dict], dict]) -> None:
        if handler in self._subscribers.get(name, []):
            self._subscribers[name].remove(handler)


def payment_posted_handler(event: Event, payload: dict) -> dict:
    logger.info(
        "%s: %s paid %s via %s (ref %s)",
        event.name,
        payload.get("student_id"),
        payload.get("amount"),
        payload.get("channel"),
        payload.get("reference"),
    )
    return {"balance": payload.get("balance")}


def period_paid_handler(event: Event, payload: dict) -> dict:
    period = payload.get("period", "")
    notice = f"{payload.get('student_id')} is cleared for {str(period).lower()} examinations"
    logger.info("%s: %s", event.name, notice)
    return {"notice": notice, "period": period}


def balance_cleared_handler(event: Event, payload: dict) -> dict:
    overpayment = payload.get("overpayment", 0)
    if overpayment and overpayment > 0:
        return {"alert": f"Overpayment of {overpayment} recorded for {payload.get('student_id')}"}
    return {}


def register_default_handlers(bus: EventBus) -> EventBus:
    bus.subscribe(PAYMENT_POSTED, payment_posted_handler)
    bus.subscribe(PERIOD_PAID, period_paid_handler)
    bus.subscribe(BALANCE_CLEARED, balance_cleared_handler)
    return bus
