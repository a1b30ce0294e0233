"""
Transaction models — the payload the console hands to the payment engine,
the client-side status, and the derived amount breakdown.
"""

import math
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from cloudpay.models.payment import PaymentOption, SavedCard


class TransactionStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({TransactionStatus.COMPLETED, TransactionStatus.FAILED, TransactionStatus.EXPIRED})

SUCCESS_TOKENS = frozenset({"successful", "completed", "paid", "success", "approved"})
FAILURE_TOKENS = frozenset({"failed"})


def normalize_status(raw: Any) -> Optional[TransactionStatus]:
    """Map a backend status string onto a client status, None if still open."""
    token = str(raw or "").strip().lower()
    if token in SUCCESS_TOKENS:
        return TransactionStatus.COMPLETED
    if token in FAILURE_TOKENS:
        return TransactionStatus.FAILED
    return None


def to_number(value: Any) -> float:
    try:
        num = float(value)
    except (TypeError, ValueError):
        return 0.0
    return num if math.isfinite(num) else 0.0


def first_present(*values: Any) -> Any:
    """First value that is not None."""
    for value in values:
        if value is not None:
            return value
    return None


class PayerInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    email: Optional[str] = None


class TransactionInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[Union[int, str]] = None
    identifier: Optional[str] = None
    reference: Optional[str] = None
    amount: Optional[Any] = None
    currency: Optional[str] = None
    status: Optional[str] = None
    payment_gateway: Optional[str] = None
    third_party_fee: Optional[Any] = None
    transaction_fee: Optional[Any] = None
    user: Optional[PayerInfo] = None


class PaymentInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    reference: Optional[str] = None
    transaction_reference: Optional[str] = None
    gateway: Optional[str] = None
    public_key: Optional[str] = None
    expires_at: Optional[datetime] = None
    customer_context: Optional[PayerInfo] = None
    payment_gateway_options: list[PaymentOption] = []
    saved_cards: list[SavedCard] = []


class OrderInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    storage_profiles: Optional[list[dict[str, Any]]] = None
    items: Optional[list[dict[str, Any]]] = None


class TransactionPayload(BaseModel):
    """The `data` block of a console transaction response."""
    model_config = ConfigDict(extra="allow")

    transaction: Optional[TransactionInfo] = None
    order: Optional[OrderInfo] = None
    instances: Optional[list[dict[str, Any]]] = None
    payment: PaymentInfo = Field(default_factory=PaymentInfo)
    accounts: Optional[list[dict[str, Any]]] = None
    order_items: Optional[list[dict[str, Any]]] = None

    @classmethod
    def from_response(cls, body: Optional[dict[str, Any]]) -> "TransactionPayload":
        """Accept either the full `{data: {...}}` envelope or the inner block."""
        body = body or {}
        data = body.get("data") if isinstance(body.get("data"), dict) else body
        return cls.model_validate(data)

    @property
    def storage_profiles(self) -> list[dict[str, Any]]:
        if self.order and self.order.storage_profiles:
            return self.order.storage_profiles
        if self.order_items:
            return self.order_items
        if self.order and self.order.items:
            return self.order.items
        return []

    @property
    def is_storage_order(self) -> bool:
        return bool(self.storage_profiles) or bool(self.accounts)


class PricingSummary(BaseModel):
    """Host-supplied totals that take precedence over gateway figures."""

    subtotal: Optional[float] = None
    tax: Optional[float] = None
    gateway_fees: Optional[float] = None
    grand_total: Optional[float] = None
    currency: Optional[str] = None


class AmountBreakdown(BaseModel):
    subtotal: float = 0.0
    tax: float = 0.0
    gateway_fees: float = 0.0
    grand_total: float = 0.0
    estimated_total: float = 0.0
    gateway_total: float = 0.0
    payable_total: float = 0.0
    adjustment: float = 0.0
    currency: str = "USD"

    @property
    def display_total(self) -> float:
        return self.payable_total if self.payable_total > 0 else self.grand_total

    @property
    def has_adjustment(self) -> bool:
        return abs(self.adjustment) > 0.01

    @property
    def minor_units(self) -> int:
        """Amount in kobo/cents for the checkout widget."""
        return max(0, math.floor(self.display_total * 100 + 0.5))

    @classmethod
    def resolve(
        cls,
        transaction: Optional[TransactionInfo],
        option: Optional[PaymentOption],
        summary: Optional[PricingSummary] = None,
        amount: Optional[float] = None,
        currency: Optional[str] = None,
    ) -> "AmountBreakdown":
        summary = summary or PricingSummary()
        tx = transaction or TransactionInfo()
        breakdown = option.charge_breakdown if option and option.charge_breakdown else None

        def opt(attr: str) -> Any:
            return getattr(option, attr) if option else None

        def charge(attr: str) -> Any:
            return getattr(breakdown, attr) if breakdown else None

        subtotal = to_number(first_present(summary.subtotal, charge("base_amount"), opt("subtotal"), 0))
        tax = to_number(first_present(summary.tax, charge("tax"), opt("tax"), 0))
        gateway_fees = to_number(first_present(
            summary.gateway_fees, charge("total_fees"), opt("fees"),
            tx.third_party_fee, tx.transaction_fee, 0,
        ))
        grand_total = to_number(first_present(
            summary.grand_total, amount, charge("grand_total"), opt("total"), tx.amount, 0,
        ))
        estimated = subtotal + tax
        estimated_total = estimated if estimated > 0 else grand_total
        gateway_total = to_number(first_present(charge("grand_total"), opt("total"), 0))
        payable_total = gateway_total if gateway_total > 0 else estimated_total + gateway_fees
        adjustment = payable_total - estimated_total if estimated_total > 0 else 0.0

        return cls(
            subtotal=subtotal,
            tax=tax,
            gateway_fees=gateway_fees,
            grand_total=grand_total,
            estimated_total=estimated_total,
            gateway_total=gateway_total,
            payable_total=payable_total,
            adjustment=adjustment,
            currency=summary.currency or currency or opt("currency") or tx.currency or "USD",
        )


class TimeRemaining(BaseModel):
    hours: int
    minutes: int
    seconds: int

    @classmethod
    def from_seconds(cls, remaining: float) -> "TimeRemaining":
        total = int(remaining)
        return cls(hours=total // 3600, minutes=(total % 3600) // 60, seconds=total % 60)

    def __str__(self) -> str:
        return f"{self.hours}h {self.minutes}m {self.seconds}s"
