"""
Finite state machine for a single booking's status.

Defines the five booking states and the events that move between them.
Each transition carries its guard (who may trigger it, whether a reason
is required) and its side effect (deposit capture, refund, cancellation
record). Transitions work on a copy of the booking: the caller only gets
the new state back once every side effect has succeeded, so a failed
payment call leaves the stored booking untouched.

Usage:
    lifecycle = BookingLifecycle(payments=gateway)
    booking = await lifecycle.apply(booking, BookingEvent.CONFIRM, {"actor": "provider"})
    assert booking.status == BookingStatus.CONFIRMED
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional, Union

from pydantic import BaseModel, ValidationError

from booking_engine.scheduling.errors import InvalidTransitionError
from booking_engine.schemas.booking_schema import (
    Actor,
    Booking,
    BookingStatus,
    Cancellation,
    StatusChange,
)
from booking_engine.tools.payments import PaymentGateway
from booking_engine.tools.refunds import RefundPolicy, TieredRefundPolicy
from booking_engine.utils import utcnow

logger = logging.getLogger(__name__)


class BookingEvent(str, Enum):
    """Events that cause status transitions."""
    CONFIRM = "confirm"
    REJECT = "reject"
    CANCEL = "cancel"
    COMPLETE = "complete"


class TransitionPayload(BaseModel):
    """Data accompanying an event."""
    actor: Actor
    reason: Optional[str] = None
    deposit_transaction_id: Optional[str] = None
    note: Optional[str] = None


@dataclass(frozen=True)
class Transition:
    """A single valid status transition."""
    from_state: BookingStatus
    to_state: BookingStatus
    event: BookingEvent
    actors: frozenset[Actor]
    requires_reason: bool = False


_PROVIDER = frozenset({Actor.PROVIDER})
_PROVIDER_OR_SYSTEM = frozenset({Actor.PROVIDER, Actor.SYSTEM})
_ANYONE = frozenset({Actor.CLIENT, Actor.PROVIDER, Actor.SYSTEM})


class BookingLifecycle:
    """
    Deterministic state machine governing booking status.

    Every transition must be explicitly defined. Anything else, including
    repeating a transition that already happened, is rejected with an
    InvalidTransitionError naming the state, the event and the reason.
    """

    TRANSITIONS: list[Transition] = [
        # --- Provider decision ---
        Transition(BookingStatus.PENDING, BookingStatus.CONFIRMED,
                   BookingEvent.CONFIRM, _PROVIDER),
        Transition(BookingStatus.PENDING, BookingStatus.REJECTED,
                   BookingEvent.REJECT, _PROVIDER, requires_reason=True),

        # --- Cancellation by either party ---
        Transition(BookingStatus.PENDING, BookingStatus.CANCELLED,
                   BookingEvent.CANCEL, _ANYONE, requires_reason=True),
        Transition(BookingStatus.CONFIRMED, BookingStatus.CANCELLED,
                   BookingEvent.CANCEL, _ANYONE, requires_reason=True),

        # --- Completion ---
        Transition(BookingStatus.CONFIRMED, BookingStatus.COMPLETED,
                   BookingEvent.COMPLETE, _PROVIDER_OR_SYSTEM),
    ]

    def __init__(
        self,
        payments: PaymentGateway,
        refund_policy: Optional[RefundPolicy] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.payments = payments
        self.refund_policy = refund_policy or TieredRefundPolicy()
        self.clock = clock

    def get_valid_events(self, booking: Booking) -> list[BookingEvent]:
        """Return all events valid from the booking's current status."""
        return [t.event for t in self.TRANSITIONS if t.from_state == booking.status]

    def find_transition(self, booking: Booking, event: BookingEvent) -> Optional[Transition]:
        for t in self.TRANSITIONS:
            if t.from_state == booking.status and t.event == event:
                return t
        return None

    async def apply(
        self,
        booking: Booking,
        event: Union[BookingEvent, str],
        payload: Union[TransitionPayload, dict[str, Any], None] = None,
    ) -> Booking:
        """
        Execute a transition and return the updated copy of the booking.

        Args:
            booking: Current persisted state. Never modified.
            event: The event to apply.
            payload: Actor, reason and optional external deposit transaction.

        Returns:
            A new Booking in the target state.

        Raises:
            InvalidTransitionError: If no transition exists or a guard fails.
            PaymentError: If the payment gateway fails; nothing is applied.
        """
        state = booking.status.value
        try:
            event = BookingEvent(event)
        except ValueError:
            raise InvalidTransitionError(state, str(event), "unknown event") from None
        data = self._parse_payload(state, event, payload)

        if booking.is_terminal:
            raise InvalidTransitionError(
                state, event.value, f"booking is already {state} and cannot change"
            )

        transition = self.find_transition(booking, event)
        if transition is None:
            valid = [e.value for e in self.get_valid_events(booking)]
            raise InvalidTransitionError(
                state, event.value, f"not allowed from this state, valid events: {valid}"
            )
        if data.actor not in transition.actors:
            allowed = sorted(a.value for a in transition.actors)
            raise InvalidTransitionError(
                state, event.value, f"'{data.actor.value}' may not do this, allowed: {allowed}"
            )
        reason = (data.reason or "").strip()
        if transition.requires_reason and not reason:
            raise InvalidTransitionError(state, event.value, "a reason is required")

        now = self.clock()
        updated = booking.model_copy(deep=True)

        if event == BookingEvent.CONFIRM:
            await self._capture_deposit(updated, data, now)
        elif event == BookingEvent.REJECT:
            updated.rejection_reason = reason
        elif event == BookingEvent.CANCEL:
            await self._cancel(updated, data.actor, reason, now)
        elif event == BookingEvent.COMPLETE:
            if now < updated.end:
                raise InvalidTransitionError(
                    state, event.value, f"booking runs until {updated.end.isoformat()}"
                )
            updated.completed_at = now

        updated.status = transition.to_state
        updated.updated_at = now
        updated.history.append(StatusChange(
            status=updated.status,
            at=now,
            event=event.value,
            actor=data.actor,
            note=reason or data.note,
        ))

        logger.debug(
            "Booking %s transition: %s -> %s (event: %s, actor: %s)",
            booking.booking_id, state, updated.status.value, event.value, data.actor.value,
        )
        return updated

    def _parse_payload(
        self,
        state: str,
        event: BookingEvent,
        payload: Union[TransitionPayload, dict[str, Any], None],
    ) -> TransitionPayload:
        if isinstance(payload, TransitionPayload):
            return payload
        try:
            return TransitionPayload.model_validate(payload or {})
        except ValidationError as exc:
            raise InvalidTransitionError(
                state, event.value, f"invalid payload: {exc.errors()[0]['msg']}"
            ) from None

    async def _capture_deposit(
        self, booking: Booking, data: TransitionPayload, now: datetime
    ) -> None:
        if not booking.requirements.deposit_required:
            return
        deposit = booking.payment.deposit
        if deposit is None:
            raise InvalidTransitionError(
                booking.status.value, BookingEvent.CONFIRM.value,
                "deposit is required but no deposit was priced",
            )
        if deposit.paid:
            return
        if data.deposit_transaction_id:
            deposit.transaction_id = data.deposit_transaction_id
        elif deposit.amount > 0:
            deposit.transaction_id = await self.payments.capture_deposit(
                booking, idempotency_key=f"{booking.booking_id}:capture"
            )
        deposit.paid = True
        deposit.paid_at = now

    async def _cancel(self, booking: Booking, actor: Actor, reason: str, now: datetime) -> None:
        refund = min(
            self.refund_policy.refund_amount(booking, actor, now),
            booking.payment.amount_paid,
        )
        if refund > 0:
            booking.payment.refund_transaction_id = await self.payments.refund(
                booking, refund, idempotency_key=f"{booking.booking_id}:refund"
            )
        booking.payment.refund_amount = refund
        booking.cancellation = Cancellation(
            cancelled_by=actor,
            reason=reason,
            cancelled_at=now,
            refund_amount=refund,
        )
