"""
Mock payment gateway.

In production, this would call the payment processor (Stripe payment
intents and refunds) over HTTP. The engine only ever talks to the
``PaymentGateway`` protocol, at lifecycle transition boundaries.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Optional, Protocol

from booking_engine.scheduling.errors import PaymentError
from booking_engine.schemas.booking_schema import Booking

logger = logging.getLogger(__name__)


class PaymentGateway(Protocol):
    """Deposit capture and refunds. Calls may block on the network."""

    async def capture_deposit(self, booking: Booking, idempotency_key: str) -> str:
        """Capture the booking's deposit and return the transaction id.

        Repeating a call with the same ``idempotency_key`` must not charge
        again; it returns the original transaction id.
        """
        ...

    async def refund(self, booking: Booking, amount: int, idempotency_key: str) -> str:
        """Refund ``amount`` minor units and return the transaction id.

        Repeating a call with the same ``idempotency_key`` must not pay out
        again; it returns the original transaction id.
        """
        ...


@dataclass
class PaymentCall:
    """Recorded gateway call, for inspection in tests and the demo."""
    kind: str
    booking_id: str
    amount: int
    transaction_id: str


class MockPaymentGateway:
    """In-memory gateway that records every call and can be told to fail."""

    def __init__(self) -> None:
        self.calls: list[PaymentCall] = []
        self.fail_captures = False
        self.fail_refunds = False
        self._completed: dict[str, str] = {}

    def _replay(self, idempotency_key: str) -> Optional[str]:
        transaction_id = self._completed.get(idempotency_key)
        if transaction_id is not None:
            logger.info("Replayed %s -> %s, no new charge", idempotency_key, transaction_id)
        return transaction_id

    async def capture_deposit(self, booking: Booking, idempotency_key: str) -> str:
        replayed = self._replay(idempotency_key)
        if replayed is not None:
            return replayed
        deposit = booking.payment.deposit
        amount = deposit.amount if deposit is not None else 0
        if self.fail_captures:
            logger.warning("Deposit capture declined for booking %s", booking.booking_id)
            raise PaymentError(f"Deposit capture declined for booking {booking.reference}.")
        transaction_id = f"pi_{uuid.uuid4().hex[:16]}"
        self._completed[idempotency_key] = transaction_id
        self.calls.append(PaymentCall("capture", booking.booking_id, amount, transaction_id))
        logger.info(
            "Deposit captured: %s %d %s", booking.reference, amount, booking.payment.currency
        )
        return transaction_id

    async def refund(self, booking: Booking, amount: int, idempotency_key: str) -> str:
        replayed = self._replay(idempotency_key)
        if replayed is not None:
            return replayed
        if self.fail_refunds:
            logger.warning("Refund failed for booking %s", booking.booking_id)
            raise PaymentError(f"Refund failed for booking {booking.reference}.")
        transaction_id = f"re_{uuid.uuid4().hex[:16]}"
        self._completed[idempotency_key] = transaction_id
        self.calls.append(PaymentCall("refund", booking.booking_id, amount, transaction_id))
        logger.info("Refund issued: %s %d %s", booking.reference, amount, booking.payment.currency)
        return transaction_id

    def captures(self) -> list[PaymentCall]:
        return [c for c in self.calls if c.kind == "capture"]

    def refunds(self) -> list[PaymentCall]:
        return [c for c in self.calls if c.kind == "refund"]

    def reset(self) -> None:
        """Clear recorded calls, idempotency keys and failure switches."""
        self.calls.clear()
        self._completed.clear()
        self.fail_captures = False
        self.fail_refunds = False
