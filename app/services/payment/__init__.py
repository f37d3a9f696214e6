"""
Payment Service Factory

Provides a single entry point for obtaining a payment service instance.
The factory pattern allows the payment routes to remain agnostic about
which implementation is being used.

Usage:
    from app.services.payment import get_payment_service

    service = get_payment_service(paystack_secret_key(settings_row))
    result = await service.initialize_transaction(...)

Switching:
    - No usable secret key → TestModePaymentService (orders paid instantly)
    - Secret key present   → PaystackPaymentService
"""

import logging
from functools import lru_cache
from typing import Optional

from app.services.payment.base import (
    BasePaymentService,
    TransactionResult,
    compute_signature,
    verify_webhook_signature,
)
from app.services.payment.mock import TestModePaymentService
from app.services.payment.paystack import PaystackPaymentService

logger = logging.getLogger(__name__)


@lru_cache(maxsize=8)
def get_payment_service(secret_key: Optional[str] = None) -> BasePaymentService:
    """
    Get the payment service for a secret key.

    Instances are cached per key, so rotating the key in system settings
    yields a fresh service.

    Returns:
        BasePaymentService: Configured payment service instance
    """
    if not secret_key:
        logger.info("Payment Service: Using TestModePaymentService (no Paystack key)")
        return TestModePaymentService()

    logger.info("Payment Service: Using PaystackPaymentService")
    return PaystackPaymentService(secret_key)


def reset_payment_service() -> None:
    """
    Clear the cached payment service instances.

    The next call to get_payment_service() will create a new instance.
    """
    get_payment_service.cache_clear()
    logger.debug("Payment service cache cleared")


__all__ = [
    "get_payment_service",
    "reset_payment_service",
    "BasePaymentService",
    "TransactionResult",
    "TestModePaymentService",
    "PaystackPaymentService",
    "compute_signature",
    "verify_webhook_signature",
]
