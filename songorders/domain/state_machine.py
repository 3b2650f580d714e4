from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple, Union

from .enums import OrderStatus, OrderTrigger
from .errors import InvalidTransition

# trigger -> (required current status, target status)
TRANSITIONS: Dict[OrderTrigger, Tuple[OrderStatus, OrderStatus]] = {
    OrderTrigger.submit: (OrderStatus.DRAFT, OrderStatus.AWAITING_PAYMENT),
    OrderTrigger.confirm_payment: (OrderStatus.AWAITING_PAYMENT, OrderStatus.PAID),
    OrderTrigger.start_lyrics: (OrderStatus.PAID, OrderStatus.LYRICS_PENDING),
    OrderTrigger.lyrics_generated: (OrderStatus.LYRICS_PENDING, OrderStatus.LYRICS_GENERATED),
    OrderTrigger.approve: (OrderStatus.LYRICS_GENERATED, OrderStatus.APPROVED),
    OrderTrigger.start_music: (OrderStatus.APPROVED, OrderStatus.MUSIC_GENERATING),
    OrderTrigger.music_ready: (OrderStatus.MUSIC_GENERATING, OrderStatus.MUSIC_READY),
    OrderTrigger.complete: (OrderStatus.MUSIC_READY, OrderStatus.COMPLETED),
}

TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED})

_TRIGGER_BY_TARGET: Dict[OrderStatus, OrderTrigger] = {to: trig for trig, (_, to) in TRANSITIONS.items()}


@dataclass(frozen=True)
class Transition:
    trigger: OrderTrigger
    from_status: OrderStatus
    to_status: OrderStatus

    @property
    def changed(self) -> bool:
        return self.from_status != self.to_status


def _as_status(value: Union[OrderStatus, str]) -> OrderStatus:
    return value if isinstance(value, OrderStatus) else OrderStatus(str(value))


def plan(current: Union[OrderStatus, str], trigger: Union[OrderTrigger, str]) -> Transition:
    """
    Resolve what firing `trigger` does to an order sitting in `current`.

    Re-firing a trigger whose target is already the current status is a no-op
    (`changed` is False). Anything else that does not start from the trigger's
    required status raises InvalidTransition; nothing is mutated here.
    """
    cur = _as_status(current)
    trig = trigger if isinstance(trigger, OrderTrigger) else OrderTrigger(str(trigger))
    required, target = TRANSITIONS[trig]

    if cur == target:
        return Transition(trig, cur, cur)
    if cur != required:
        raise InvalidTransition(cur.value, trig.value)
    return Transition(trig, cur, target)


def trigger_for_target(target: Union[OrderStatus, str]) -> OrderTrigger:
    """External events carry a target status; map it back to the trigger that reaches it."""
    tgt = _as_status(target)
    trig = _TRIGGER_BY_TARGET.get(tgt)
    if trig is None:
        raise InvalidTransition("*", f"reach {tgt.value}", message=f"no trigger leads to {tgt.value}")
    return trig

