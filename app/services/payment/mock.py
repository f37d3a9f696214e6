"""
Test-Mode Payment Service

Stands in for Paystack when no usable secret key is configured
(neither in system settings nor in the environment). Every transaction
succeeds immediately, which lets the customer app complete the online
checkout flow on a development machine.
"""

import logging
from typing import Optional

from app.services.payment.base import BasePaymentService, TransactionResult

logger = logging.getLogger(__name__)


class TestModePaymentService(BasePaymentService):
    """Payment service that approves everything without calling a gateway."""

    __test__ = False  # not a pytest test class

    @property
    def provider_name(self) -> str:
        return "test"

    @property
    def is_test_mode(self) -> bool:
        return True

    async def initialize_transaction(
        self,
        email: str,
        amount: float,
        reference: str,
        callback_url: str,
        currency: str = "GHS",
        metadata: Optional[dict] = None,
    ) -> TransactionResult:
        if amount <= 0:
            return TransactionResult(success=False, error_message="Amount must be greater than 0")

        logger.info(f"Test mode: transaction {reference} approved ({currency} {amount:.2f})")

        return TransactionResult(
            success=True,
            reference=reference,
            authorization_url=callback_url,
            status="success",
            amount=amount,
            currency=currency,
            test_mode=True,
            raw={"test_mode": True, "email": email, **(metadata or {})},
        )

    async def verify_transaction(self, reference: str) -> TransactionResult:
        return TransactionResult(
            success=True,
            reference=reference,
            status="success",
            test_mode=True,
            raw={"test_mode": True, "reference": reference},
        )
