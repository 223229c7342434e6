import re

from pos_api.core.errors import BadRequest

COUNTRY_CODE = "233"
_GH_MOBILE = re.compile(r"^\+233\d{9}$")


def normalize_phone(raw: str) -> str:
    """bring a Ghanaian mobile number into +233XXXXXXXXX form.

    0241234567, 241234567, 233241234567 and +233 24 123 4567 all give
    +233241234567. No validation happens here, see ``validate_phone``.
    """
    clean = re.sub(r"[\s\-()]", "", raw or "")
    if clean.startswith("+"):
        clean = clean[1:]
    if clean.startswith("0"):
        clean = COUNTRY_CODE + clean[1:]
    elif not clean.startswith(COUNTRY_CODE):
        clean = COUNTRY_CODE + clean
    return "+" + clean


def validate_phone(raw: str | None) -> str:
    if not raw or not raw.strip():
        raise BadRequest("Phone number is required")
    phone = normalize_phone(raw)
    if not _GH_MOBILE.match(phone):
        raise BadRequest("Invalid phone number", details={"phoneNumber": raw})
    return phone


def gateway_payer(phone: str) -> str:
    """the gateway expects the number without the leading +."""
    return phone.lstrip("+")
