from typing import Any, Dict
from decimal import Decimal
import hmac
import hashlib

from pos_api.core.config import settings


class PaymentsProvider:
    """base payments provider interface."""

    name = "base"

    def is_configured(self) -> bool:  # pragma: no cover
        return False

    def initiate(self, phone: str, amount: Decimal, provider: str, external_ref: str) -> Dict[str, Any]:  # pragma: no cover
        raise NotImplementedError

    @staticmethod
    def verify_signature(body: bytes, signature: str | None) -> bool:
        if not signature:
            return False
        secret = (settings.WEBHOOK_SECRET or "").encode()
        computed = hmac.new(secret, body, hashlib.sha256).hexdigest()
        return hmac.compare_digest(computed, signature)
