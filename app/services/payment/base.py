"""
Payment Service Abstract Base Class

Defines the interface contract for online payment providers.
Both TestModePaymentService and PaystackPaymentService implement these
methods, so the payment routes behave identically regardless of which
service is active.

Design Pattern: Strategy Pattern
    - Test mode when no Paystack key is configured
    - Paystack when a usable secret key exists
"""

import hashlib
import hmac
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class TransactionResult:
    """
    Standardized result from initializing or verifying a transaction.

    Attributes:
        success: Whether the provider accepted the request / the charge succeeded
        reference: Transaction reference
        authorization_url: Checkout page the customer is redirected to
        access_code: Provider access code for inline checkout
        status: Provider transaction status (e.g. "success", "abandoned")
        amount: Amount in major currency units (cedis)
        currency: Currency code
        test_mode: True when no real gateway was involved
        error_message: Error description if the call failed
        response_time_ms: Time taken by the provider
        raw: Provider payload kept for the payment record
    """
    success: bool
    reference: Optional[str] = None
    authorization_url: Optional[str] = None
    access_code: Optional[str] = None
    status: Optional[str] = None
    amount: Optional[float] = None
    currency: str = "GHS"
    test_mode: bool = False
    error_message: Optional[str] = None
    response_time_ms: float = 0.0
    raw: Optional[dict] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "reference": self.reference,
            "authorization_url": self.authorization_url,
            "access_code": self.access_code,
            "status": self.status,
            "amount": self.amount,
            "currency": self.currency,
            "test_mode": self.test_mode,
            "error_message": self.error_message,
            "response_time_ms": self.response_time_ms,
        }


def compute_signature(payload: bytes, secret: str) -> str:
    """HMAC-SHA512 hex digest, as sent in ``x-paystack-signature``."""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha512).hexdigest()


def verify_webhook_signature(payload: bytes, signature: Optional[str], secret: str) -> bool:
    if not signature:
        return False
    return hmac.compare_digest(compute_signature(payload, secret), signature)


class BasePaymentService(ABC):
    """
    Abstract base class for payment services.

    Example:
        >>> service = get_payment_service(secret_key)
        >>> result = await service.initialize_transaction(
        ...     email="ama@example.com", amount=120.5, reference="DF-...",
        ...     callback_url="https://shop/order-confirmation?orderId=...",
        ... )
        >>> if result.success:
        ...     print(result.authorization_url)
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of the payment provider."""
        pass

    @property
    def is_test_mode(self) -> bool:
        """True when payments are accepted without a real gateway."""
        return False

    @abstractmethod
    async def initialize_transaction(
        self,
        email: str,
        amount: float,
        reference: str,
        callback_url: str,
        currency: str = "GHS",
        metadata: Optional[dict] = None,
    ) -> TransactionResult:
        """
        Start a checkout for ``amount`` (major units).

        Implementations handle conversion to the smallest currency unit.
        """
        pass

    @abstractmethod
    async def verify_transaction(self, reference: str) -> TransactionResult:
        """Ask the provider for the final state of a transaction."""
        pass
