"""
Paystack Payment Service Implementation

Production implementation talking to the Paystack REST API over httpx.
Used whenever a usable secret key is configured, either in the
``system_settings`` row or through PAYSTACK_SECRET_KEY.

Security Notes:
    - Never log the secret key
    - Always verify webhook signatures (see base.verify_webhook_signature)
"""

import logging
from datetime import datetime
from typing import Optional

import httpx

from app.core.config import get_settings
from app.services.payment.base import BasePaymentService, TransactionResult

logger = logging.getLogger(__name__)


class PaystackPaymentService(BasePaymentService):
    """
    Paystack checkout integration.

    Example:
        >>> service = PaystackPaymentService("sk_test_...")
        >>> result = await service.verify_transaction("DF-20250114-00007-1736860000000")
    """

    def __init__(
        self,
        secret_key: str,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            secret_key: Paystack secret key
            base_url: API root, defaults to PAYSTACK_BASE_URL
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests use MockTransport)
        """
        if not secret_key:
            raise ValueError("A Paystack secret key is required")

        settings = get_settings()
        self._secret_key = secret_key
        self._base_url = base_url or settings.paystack_base_url
        self._timeout = timeout or settings.paystack_timeout
        self._transport = transport

        logger.info(f"PaystackPaymentService initialized ({self._base_url})")

    @property
    def provider_name(self) -> str:
        return "paystack"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {self._secret_key}",
                "Content-Type": "application/json",
            },
        )

    def _convert_to_minor(self, amount: float) -> int:
        """Paystack expects the smallest currency unit (pesewas)."""
        return int(round(amount * 100))

    def _convert_from_minor(self, minor: int) -> float:
        return minor / 100.0

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            return response.json().get("message") or response.text
        except ValueError:
            return response.text or f"HTTP {response.status_code}"

    async def initialize_transaction(
        self,
        email: str,
        amount: float,
        reference: str,
        callback_url: str,
        currency: str = "GHS",
        metadata: Optional[dict] = None,
    ) -> TransactionResult:
        start_time = datetime.now()
        logger.info(f"Paystack: Initializing {reference} for {currency} {amount:.2f}")

        payload = {
            "email": email,
            "amount": self._convert_to_minor(amount),
            "reference": reference,
            "callback_url": callback_url,
            "currency": currency,
            "metadata": metadata or {},
        }

        try:
            async with self._client() as client:
                response = await client.post("/transaction/initialize", json=payload)
        except httpx.RequestError as e:
            logger.error(f"Paystack: Connection error - {e}")
            return TransactionResult(
                success=False,
                reference=reference,
                error_message="Payment gateway unreachable",
            )

        elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000

        if response.is_error:
            message = self._error_message(response)
            logger.warning(f"Paystack: Initialize rejected - {message}")
            return TransactionResult(
                success=False,
                reference=reference,
                error_message=message,
                response_time_ms=elapsed_ms,
            )

        body = response.json()
        data = body.get("data") or {}
        return TransactionResult(
            success=bool(body.get("status")),
            reference=data.get("reference", reference),
            authorization_url=data.get("authorization_url"),
            access_code=data.get("access_code"),
            amount=amount,
            currency=currency,
            error_message=None if body.get("status") else body.get("message"),
            response_time_ms=elapsed_ms,
            raw=data,
        )

    async def verify_transaction(self, reference: str) -> TransactionResult:
        start_time = datetime.now()

        try:
            async with self._client() as client:
                response = await client.get(f"/transaction/verify/{reference}")
        except httpx.RequestError as e:
            logger.error(f"Paystack: Connection error - {e}")
            return TransactionResult(
                success=False,
                reference=reference,
                error_message="Payment gateway unreachable",
            )

        elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000

        if response.is_error:
            message = self._error_message(response)
            logger.warning(f"Paystack: Verify failed for {reference} - {message}")
            return TransactionResult(
                success=False,
                reference=reference,
                error_message=message,
                response_time_ms=elapsed_ms,
            )

        data = response.json().get("data") or {}
        status = data.get("status")
        amount = data.get("amount")

        logger.info(f"Paystack: Transaction {reference} status={status}")

        return TransactionResult(
            success=status == "success",
            reference=data.get("reference", reference),
            status=status,
            amount=self._convert_from_minor(amount) if amount is not None else None,
            currency=data.get("currency", "GHS"),
            error_message=None if status == "success" else f"Payment {status or 'unknown'}",
            response_time_ms=elapsed_ms,
            raw=data,
        )
