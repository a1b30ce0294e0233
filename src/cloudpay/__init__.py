"""
cloudpay — transaction payment confirmation engine for the cloud console.

Picks a payment channel, hands card payments to the hosted checkout, confirms
with the backend, polls for out-of-band settlement and tracks expiry.
"""

from cloudpay.client import CloudPay, AsyncCloudPay
from cloudpay.auth import AuthContext
from cloudpay.engine import PaymentEngine
from cloudpay.errors import CloudPayError, AuthError, TransactionError, ConnectionError
from cloudpay.models.payment import BANK_TRANSFER, CARD, SAVED_CARD
from cloudpay.models.transaction import TransactionStatus

__version__ = "0.1.0"
__all__ = [
    "CloudPay",
    "AsyncCloudPay",
    "AuthContext",
    "PaymentEngine",
    "CloudPayError",
    "AuthError",
    "TransactionError",
    "ConnectionError",
    "TransactionStatus",
    "CARD",
    "BANK_TRANSFER",
    "SAVED_CARD",
]
