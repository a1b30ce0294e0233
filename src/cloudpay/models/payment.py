"""
Payment option and saved card models — entries of payment.payment_gateway_options
and payment.saved_cards in a transaction payload.
"""

from typing import Any, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

CARD = "card"
BANK_TRANSFER = "bank_transfer"
SAVED_CARD = "saved_card"


class ChargeBreakdown(BaseModel):
    model_config = ConfigDict(extra="allow")

    base_amount: Optional[Any] = None
    tax: Optional[Any] = None
    total_fees: Optional[Any] = None
    grand_total: Optional[Any] = None


class BankDetails(BaseModel):
    """Account the payer transfers into."""
    model_config = ConfigDict(extra="allow")

    account_name: Optional[str] = None
    account_number: Optional[str] = None
    bank_name: Optional[str] = None


class PaymentOption(BaseModel):
    """One gateway offering for a transaction."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: Optional[Union[int, str]] = None
    name: Optional[str] = None
    payment_type: Optional[str] = None
    gateway: Optional[str] = None
    provider: Optional[str] = None
    transaction_reference: Optional[str] = None
    public_key: Optional[str] = Field(default=None, validation_alias=AliasChoices("public_key", "publicKey"))
    details: Optional[BankDetails] = None
    charge_breakdown: Optional[ChargeBreakdown] = None
    subtotal: Optional[Any] = None
    tax: Optional[Any] = None
    fees: Optional[Any] = None
    total: Optional[Any] = None
    currency: Optional[str] = None

    @property
    def key(self) -> Optional[str]:
        return None if self.id is None else str(self.id)

    @property
    def channel_type(self) -> Optional[str]:
        """Classify by payment_type, or by name when no type is given."""
        kind = (self.payment_type or "").lower()
        if not kind:
            kind = (self.name or "").lower()
        if "card" in kind:
            return CARD
        if "bank" in kind or "transfer" in kind:
            return BANK_TRANSFER
        return None

    @property
    def gateway_name(self) -> str:
        return self.name or self.gateway or self.provider or ""

    @property
    def is_paystack_card(self) -> bool:
        return (self.payment_type or "").lower() == "card" and "paystack" in (self.name or "").lower()


class SavedCard(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[Union[int, str]] = None
    identifier: Optional[str] = None
    card_type: Optional[str] = None
    last4: Optional[str] = None
    exp_month: Optional[Union[int, str]] = None
    exp_year: Optional[Union[int, str]] = None
    bank: Optional[str] = None
    payment_gateway: Optional[str] = None

    def resolve_identifier(self, fallback: str = "") -> str:
        if self.identifier:
            return self.identifier
        if self.id is not None:
            return str(self.id)
        return fallback

    @property
    def label(self) -> str:
        return f"{(self.card_type or 'Card').upper()} •••• {self.last4 or '----'}"
