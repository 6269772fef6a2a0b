"""Mediator that routes signals between participants.

Participants are plain identities (strings, enum members). A participant's
bindings say which reactions run when *that participant* sends a given
signal. Reactions never hold references to other participants; anything
they need to do goes back through the handle carried in
:attr:`Signal.context`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from .errors import KernelError, ReactionFailed, RouterSealedError, RoutingCycleDetected
from .events import freeze

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 8


@dataclass(frozen=True, slots=True)
class Signal:
    sender: Hashable
    name: str
    payload: Mapping[str, object]
    depth: int
    context: object | None = field(default=None, compare=False)


Reaction = Callable[[Signal], object]


@dataclass(frozen=True, slots=True)
class Binding:
    signal: str
    reaction: Reaction = field(compare=False)


BindingSpec = Iterable[Binding] | Mapping[str, Reaction | Sequence[Reaction]]


def _normalise(bindings: BindingSpec) -> tuple[Binding, ...]:
    if isinstance(bindings, Mapping):
        out: list[Binding] = []
        for signal, reactions in bindings.items():
            if callable(reactions):
                out.append(Binding(signal=signal, reaction=reactions))
            else:
                out.extend(Binding(signal=signal, reaction=r) for r in reactions)
        return tuple(out)
    return tuple(bindings)


Delivery = Callable[[Hashable, Signal], object]


def broadcast(
    participants: Iterable[Hashable], signal: str, deliver: Delivery
) -> dict[Hashable, BindingSpec]:
    """Build bindings that relay ``signal`` from each participant to all the others.

    ``deliver(recipient, signal)`` runs once per recipient, in ``participants``
    order, never for the sender itself. A payload with a ``"to"`` key narrows
    delivery to that single recipient.
    """

    members = tuple(dict.fromkeys(participants))
    return {sender: {signal: _fan_out(sender, members, deliver)} for sender in members}


def _fan_out(sender: Hashable, members: tuple[Hashable, ...], deliver: Delivery) -> Reaction:
    recipients = tuple(m for m in members if m != sender)

    def reaction(routed: Signal) -> None:
        target = routed.payload.get("to")
        for recipient in recipients:
            if target is None or recipient == target:
                deliver(recipient, routed)

    return reaction


class CommandRouter:
    """Route ``(sender, signal)`` notifications to bound reactions.

    Reactions may call :meth:`notify` again (directly or through the
    coordinator). Nesting deeper than ``max_depth`` raises
    :class:`RoutingCycleDetected`; whatever earlier reactions already
    committed stays committed.

    Not thread-safe on its own. The coordinator serialises access.
    """

    def __init__(self, *, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        if max_depth < 1:
            raise ValueError("max_depth must be at least 1")
        self._max_depth = max_depth
        self._bindings: dict[Hashable, tuple[Binding, ...]] = {}
        self._frames: list[tuple[Hashable, str]] = []
        self._sealed = False

    @property
    def max_depth(self) -> int:
        return self._max_depth

    @property
    def sealed(self) -> bool:
        return self._sealed

    @property
    def participants(self) -> tuple[Hashable, ...]:
        return tuple(self._bindings)

    @property
    def depth(self) -> int:
        return len(self._frames)

    def bindings_for(self, participant: Hashable) -> tuple[Binding, ...]:
        return self._bindings.get(participant, ())

    def seal(self) -> None:
        self._sealed = True

    def register(self, participant: Hashable, bindings: BindingSpec) -> None:
        """Set the bindings for ``participant``, replacing earlier ones."""

        if self._sealed:
            raise RouterSealedError(f"Cannot register {participant!r}: router is sealed")
        normalised = _normalise(bindings)
        replaced = participant in self._bindings
        self._bindings[participant] = normalised
        logger.debug(
            "Participant registered",
            extra={
                "participant": str(participant),
                "bindings": len(normalised),
                "replaced": replaced,
            },
        )

    def unregister(self, participant: Hashable) -> None:
        if self._sealed:
            raise RouterSealedError(f"Cannot unregister {participant!r}: router is sealed")
        self._bindings.pop(participant, None)

    def notify(
        self,
        sender: Hashable,
        signal: str,
        payload: Mapping[str, object] | None = None,
        *,
        context: object | None = None,
    ) -> int:
        """Invoke every reaction bound to ``(sender, signal)``; return how many ran."""

        reactions = [b.reaction for b in self._bindings.get(sender, ()) if b.signal == signal]
        if not reactions:
            logger.debug(
                "No reactions bound", extra={"participant": str(sender), "signal": signal}
            )
            return 0

        if len(self._frames) >= self._max_depth:
            chain = [*self._frames, (sender, signal)]
            logger.error(
                "Routing cycle detected",
                extra={"participant": str(sender), "signal": signal, "limit": self._max_depth},
            )
            raise RoutingCycleDetected(chain, self._max_depth)

        frozen = freeze(dict(payload or {}))
        assert isinstance(frozen, Mapping)
        self._frames.append((sender, signal))
        try:
            routed = Signal(
                sender=sender,
                name=signal,
                payload=frozen,
                depth=len(self._frames),
                context=context,
            )
            for reaction in reactions:
                try:
                    reaction(routed)
                except KernelError:
                    raise
                except Exception as exc:
                    logger.warning(
                        "Reaction failed",
                        extra={"participant": str(sender), "signal": signal},
                    )
                    raise ReactionFailed(sender, signal) from exc
        finally:
            self._frames.pop()

        return len(reactions)
