from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional
from uuid import uuid4

import requests
from django.conf import settings

from payments.exceptions import ConfigurationError, ProviderError

logger = logging.getLogger(__name__)

SUCCESS = "success"
# Paystack statuses after which the attempt can no longer succeed.
TERMINAL_FAILURE_STATUSES = {"failed", "abandoned", "reversed"}


@dataclass(frozen=True)
class PaystackConfig:
    secret_key: str
    public_key: str
    base_url: str = "https://api.paystack.co"
    timeout: float = 10.0
    callback_url: str = ""
    use_stub: bool = False

    @classmethod
    def from_settings(cls) -> "PaystackConfig":
        frontend_url = getattr(settings, "FRONTEND_URL", "").rstrip("/")
        return cls(
            secret_key=getattr(settings, "PAYSTACK_SECRET_KEY", ""),
            public_key=getattr(settings, "PAYSTACK_PUBLIC_KEY", ""),
            base_url=getattr(settings, "PAYSTACK_BASE_URL", cls.base_url).rstrip("/"),
            timeout=getattr(settings, "PAYSTACK_TIMEOUT_SECONDS", cls.timeout),
            callback_url=f"{frontend_url}/dashboard?payment=success",
            use_stub=getattr(settings, "PAYSTACK_USE_STUB", False),
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.secret_key)


@dataclass
class InitializedTransaction:
    authorization_url: str
    access_code: str
    raw: dict = field(default_factory=dict)


@dataclass
class VerifiedTransaction:
    status: str
    transaction_id: Optional[str]
    raw: dict = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == SUCCESS

    @property
    def failed(self) -> bool:
        return self.status in TERMINAL_FAILURE_STATUSES


def to_minor_units(amount) -> int:
    """Convert a major-unit amount (naira, dollars) to kobo/cents."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaystackClient:
    """Thin wrapper over the Paystack transaction API. No retries."""

    def __init__(self, config: PaystackConfig):
        if not config.is_configured:
            raise ConfigurationError("PAYSTACK_SECRET_KEY is not configured.")
        self.config = config

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.secret_key}",
            "Content-Type": "application/json",
        }

    def _handle_response(self, response: requests.Response, action: str) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code >= 400 or not body.get("status"):
            message = body.get("message") or f"HTTP {response.status_code}"
            logger.warning("Paystack %s failed: %s", action, message)
            raise ProviderError(f"Paystack {action} failed: {message}")
        return body.get("data") or {}

    def initialize_transaction(
        self,
        *,
        amount,
        email: str,
        reference: str,
        currency: str,
        metadata: dict | None = None,
    ) -> InitializedTransaction:
        payload = {
            "amount": to_minor_units(amount),
            "email": email,
            "reference": reference,
            "currency": currency,
            "callback_url": self.config.callback_url,
            "metadata": metadata or {},
        }
        try:
            response = requests.post(
                f"{self.config.base_url}/transaction/initialize",
                json=payload,
                headers=self._headers(),
                timeout=self.config.timeout,
            )
        except requests.RequestException as exc:
            logger.exception("Paystack initialize request for %s failed: %s", reference, exc)
            raise ProviderError(f"Could not reach Paystack: {exc}") from exc

        data = self._handle_response(response, "initialize")
        return InitializedTransaction(
            authorization_url=data.get("authorization_url", ""),
            access_code=data.get("access_code", ""),
            raw=data,
        )

    def verify_transaction(self, reference: str) -> VerifiedTransaction:
        try:
            response = requests.get(
                f"{self.config.base_url}/transaction/verify/{reference}",
                headers=self._headers(),
                timeout=self.config.timeout,
            )
        except requests.RequestException as exc:
            logger.exception("Paystack verify request for %s failed: %s", reference, exc)
            raise ProviderError(f"Could not reach Paystack: {exc}") from exc

        data = self._handle_response(response, "verify")
        transaction_id = data.get("id")
        return VerifiedTransaction(
            status=data.get("status", ""),
            transaction_id=str(transaction_id) if transaction_id is not None else None,
            raw=data,
        )


class StubPaystackClient:
    """
    Stand-in for Paystack used when ``PAYSTACK_USE_STUB`` is enabled.

    Local development does not hit Paystack; initialize returns a frontend
    preview link and verify always reports success so the rest of the flow
    (booking confirmation, receipts) behaves as if Paystack responded.
    """

    def __init__(self, config: PaystackConfig):
        self.config = config

    def initialize_transaction(self, *, amount, email, reference, currency, metadata=None):
        access_code = f"stub_{uuid4().hex[:12]}"
        preview_url = (
            f"{settings.FRONTEND_URL.rstrip('/')}/payments/preview?"
            f"reference={reference}&amount={to_minor_units(amount)}&currency={currency}"
        )
        return InitializedTransaction(
            authorization_url=preview_url,
            access_code=access_code,
            raw={"access_code": access_code, "authorization_url": preview_url, "reference": reference},
        )

    def verify_transaction(self, reference):
        transaction_id = f"stub_{uuid4().hex}"
        return VerifiedTransaction(
            status=SUCCESS,
            transaction_id=transaction_id,
            raw={"id": transaction_id, "reference": reference, "status": SUCCESS},
        )


def get_client(config: PaystackConfig | None = None):
    config = config or PaystackConfig.from_settings()
    if config.use_stub:
        return StubPaystackClient(config)
    return PaystackClient(config)
