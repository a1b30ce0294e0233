"""
Transaction reference resolution.

A transaction is known by several names: the gateway reference on the
selected option, the transaction's own identifier/reference, and whatever
the host passed in. Confirmation and status lookup prefer different ones.
"""

import re
from typing import Any, Optional

from cloudpay.models.payment import PaymentOption
from cloudpay.models.transaction import TransactionPayload

_NUMERIC = re.compile(r"^\d+$")


def normalize_reference(value: Any) -> Optional[str]:
    if value is None:
        return None
    trimmed = str(value).strip()
    return trimmed or None


def is_numeric_reference(value: Optional[str]) -> bool:
    return bool(value) and bool(_NUMERIC.match(value or ""))


def own_reference(payload: TransactionPayload) -> Optional[str]:
    tx = payload.transaction
    return normalize_reference(
        (tx.identifier if tx else None)
        or (tx.reference if tx else None)
        or payload.payment.reference
        or payload.payment.transaction_reference
    )


def transaction_identifier(
    option: Optional[PaymentOption], payload: TransactionPayload, caller_reference: Optional[str] = None,
) -> Optional[str]:
    """Reference to confirm against.

    A bare numeric caller reference is a database id, not a payment
    reference, and is never used here.
    """
    option_reference = normalize_reference(option.transaction_reference if option else None)
    if option_reference:
        return option_reference
    reference = own_reference(payload)
    if reference:
        return reference
    caller = normalize_reference(caller_reference)
    if caller and not is_numeric_reference(caller):
        return caller
    return None


def status_lookup_identifier(
    payload: TransactionPayload, identifier: Optional[str], caller_reference: Optional[str] = None,
) -> Optional[str]:
    tx_id = payload.transaction.id if payload.transaction else None
    return normalize_reference(tx_id) or identifier or normalize_reference(caller_reference)


def display_reference(
    payload: TransactionPayload, identifier: Optional[str], caller_reference: Optional[str] = None,
) -> Optional[str]:
    tx_id = payload.transaction.id if payload.transaction else None
    return identifier or normalize_reference(caller_reference) or normalize_reference(tx_id)
