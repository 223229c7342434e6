"""
Moolre mobile-money client.

One call: ask the gateway to push a payment prompt to the payer's phone. The
result of the prompt arrives later on the payment callback.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, Optional

import httpx

from pos_api.core.config import settings
from pos_api.core.errors import BadRequest, PaymentConfigError, PaymentGatewayError
from pos_api.services.payments.base import PaymentsProvider
from pos_api.services.payments.phone import gateway_payer

logger = logging.getLogger(__name__)

SERVICE_PROVIDER_CHANNELS = {
    "MTN": "13",
    "Vodafone": "6",
    "Airtel": "7",
}
PAYMENT_TYPE_PROMPT = 1
CURRENCY = "GHS"


class MoolrePayments(PaymentsProvider):
    name = "moolre"

    def __init__(
        self,
        username: Optional[str] = None,
        public_key: Optional[str] = None,
        account_number: Optional[str] = None,
        api_url: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.username = username if username is not None else settings.MOOLRE_USERNAME
        self.public_key = public_key if public_key is not None else settings.MOOLRE_PUBLIC_KEY
        self.account_number = account_number if account_number is not None else settings.MOOLRE_ACCOUNT_NUMBER
        self.api_url = api_url or settings.MOOLRE_API_URL
        self.transport = transport

    def is_configured(self) -> bool:
        return bool(self.username and self.public_key and self.account_number)

    def build_payload(self, phone: str, amount: Decimal, provider: str, external_ref: str) -> Dict[str, Any]:
        channel = SERVICE_PROVIDER_CHANNELS.get(provider)
        if channel is None:
            raise BadRequest("Valid service provider is required")
        return {
            "type": PAYMENT_TYPE_PROMPT,
            "channel": channel,
            "currency": CURRENCY,
            "payer": gateway_payer(phone),
            "amount": str(amount),
            "externalref": external_ref,
            "accountnumber": self.account_number,
        }

    def initiate(self, phone: str, amount: Decimal, provider: str, external_ref: str) -> Dict[str, Any]:
        if not self.is_configured():
            logger.error("Missing Moolre credentials in environment variables")
            raise PaymentConfigError("Payment service configuration error")

        payload = self.build_payload(phone, amount, provider, external_ref)
        headers = {
            "X-API-USER": self.username,
            "X-API-PUBKEY": self.public_key,
            "Content-Type": "application/json",
        }

        try:
            with httpx.Client(timeout=settings.PAYMENT_TIMEOUT_SECONDS, transport=self.transport) as client:
                response = client.post(self.api_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Moolre request failed for {external_ref}: {e}")
            raise PaymentGatewayError("Internal server error", details=str(e)) from e

        try:
            data = response.json()
        except ValueError:
            data = {"message": response.text}

        if response.is_error:
            logger.error(f"Moolre API error for {external_ref}: {response.status_code} {data}")
            message = data.get("message") if isinstance(data, dict) else None
            raise PaymentGatewayError(
                "Payment initiation failed",
                status_code=response.status_code,
                details=message or "Unknown error",
            )

        logger.info(f"Payment prompt sent for {external_ref} via {provider}")
        return data


def parse_callback(payload: Dict[str, Any]) -> tuple:
    """(externalref, succeeded) from a gateway webhook body."""
    data = payload.get("data") if isinstance(payload.get("data"), dict) else payload
    external_ref = data.get("externalref") or payload.get("externalref")
    tx_status = data.get("txstatus", payload.get("status"))
    succeeded = str(tx_status).lower() in ("1", "success", "successful")
    return external_ref, succeeded
