"""Synchronous publish/subscribe event bus.

The bus carries no business logic. It delivers immutable :class:`Event`
records to every listener whose filter matches, in subscription order, and
isolates listeners from each other's failures.
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections import deque
from collections.abc import Callable, Hashable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from fnmatch import fnmatchcase
from types import MappingProxyType

logger = logging.getLogger(__name__)

STATE_CHANGED = "state-changed"
LIFECYCLE_CHANGED = "lifecycle-changed"

Handler = Callable[["Event"], object]


def freeze(value: object) -> object:
    """Return a read-only copy of nested mappings, lists and sets."""

    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    if isinstance(value, (set, frozenset)):
        return frozenset(freeze(item) for item in value)
    return value


@dataclass(frozen=True, slots=True)
class Event:
    """An immutable, ordered notification.

    The payload is deep-frozen on construction, whoever builds the event.
    """

    name: str
    payload: Mapping[str, object]
    ordinal: int
    emitted_at: datetime = field(default_factory=lambda: datetime.now(UTC), compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "payload", freeze(dict(self.payload)))


@dataclass(frozen=True, slots=True)
class Subscription:
    """Handle returned by :meth:`EventBus.subscribe`."""

    subscription_id: int
    subscriber: Hashable
    event_filter: str

    def matches(self, event_name: str) -> bool:
        return fnmatchcase(event_name, self.event_filter)


@dataclass(frozen=True, slots=True)
class ListenerError:
    subscription: Subscription
    event: Event
    error: Exception


@dataclass(frozen=True, slots=True)
class PublishResult:
    event: Event
    delivered: int
    errors: tuple[ListenerError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors


class EventBus:
    """Deliver named events to registered listeners.

    ``publish`` snapshots the listener list before delivering, so handlers
    may subscribe or unsubscribe while an event is in flight without
    affecting that delivery. Handler exceptions are logged, recorded and
    never propagated.
    """

    def __init__(self, *, error_log_size: int = 100) -> None:
        self._listeners: list[tuple[Subscription, Handler]] = []
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._ordinals = itertools.count(1)
        self._errors: deque[ListenerError] = deque(maxlen=error_log_size)

    def subscribe(
        self,
        event_filter: str,
        handler: Handler,
        *,
        subscriber: Hashable | None = None,
    ) -> Subscription:
        identity = handler if subscriber is None else subscriber
        with self._lock:
            for existing, _ in self._listeners:
                if existing.subscriber == identity and existing.event_filter == event_filter:
                    logger.debug(
                        "Duplicate subscription ignored",
                        extra={
                            "event_filter": event_filter,
                            "subscription_id": existing.subscription_id,
                        },
                    )
                    return existing

            subscription = Subscription(
                subscription_id=next(self._ids),
                subscriber=identity,
                event_filter=event_filter,
            )
            self._listeners.append((subscription, handler))

        logger.debug(
            "Subscribed",
            extra={"event_filter": event_filter, "subscription_id": subscription.subscription_id},
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> bool:
        with self._lock:
            before = len(self._listeners)
            self._listeners = [
                (sub, handler)
                for sub, handler in self._listeners
                if sub.subscription_id != subscription.subscription_id
            ]
            removed = len(self._listeners) != before

        if removed:
            logger.debug(
                "Unsubscribed", extra={"subscription_id": subscription.subscription_id}
            )
        return removed

    @property
    def subscriptions(self) -> tuple[Subscription, ...]:
        with self._lock:
            return tuple(sub for sub, _ in self._listeners)

    @property
    def listener_errors(self) -> tuple[ListenerError, ...]:
        with self._lock:
            return tuple(self._errors)

    def clear_listener_errors(self) -> None:
        with self._lock:
            self._errors.clear()

    def make_event(self, name: str, payload: Mapping[str, object] | None = None) -> Event:
        with self._lock:
            ordinal = next(self._ordinals)
        return Event(name=name, payload=dict(payload or {}), ordinal=ordinal)

    def emit(self, name: str, payload: Mapping[str, object] | None = None) -> PublishResult:
        return self.publish(self.make_event(name, payload))

    def publish(self, event: Event) -> PublishResult:
        with self._lock:
            listeners = [
                (sub, handler) for sub, handler in self._listeners if sub.matches(event.name)
            ]

        errors: list[ListenerError] = []
        for subscription, handler in listeners:
            try:
                handler(event)
            except Exception as exc:
                logger.exception(
                    "Listener failed",
                    extra={
                        "event_name": event.name,
                        "ordinal": event.ordinal,
                        "subscription_id": subscription.subscription_id,
                    },
                )
                errors.append(ListenerError(subscription=subscription, event=event, error=exc))

        if errors:
            with self._lock:
                self._errors.extend(errors)

        logger.debug(
            "Published",
            extra={"event_name": event.name, "ordinal": event.ordinal, "delivered": len(listeners)},
        )
        return PublishResult(event=event, delivered=len(listeners), errors=tuple(errors))
