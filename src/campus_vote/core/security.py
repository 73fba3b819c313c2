"""Security helpers for one-time codes, voting tokens and receipts.

Anonymity protocol
------------------
1. A voter proves control of a registered mobile with a one-time code.
2. The verifier issues a random session token bound to (election, voter).
3. The ballot is stored with a fresh random nonce and no voter or token
   reference; the voter ledger records only *that* the voter voted.
4. The receipt is a keyed BLAKE3 digest over the ballot row, so it proves
   participation without exposing the choice.
"""
from __future__ import annotations

import hashlib
import hmac
import re
import secrets
from datetime import datetime

import blake3

from campus_vote.core.errors import ValidationError

_MOBILE_SEPARATORS = re.compile(r"[\s\-().]")
_E164_DIGITS = re.compile(r"^[1-9][0-9]{7,14}$")
NATIONAL_NUMBER_LENGTH = 10
SESSION_TOKEN_BYTES = 32
NONCE_BYTES = 16


def normalize_mobile(raw: str, default_country_code: str) -> str:
    """Return ``raw`` as an E.164 string such as ``+919999999999``.

    Bare national numbers (ten digits, no leading ``+``) receive
    ``default_country_code``. Raises ValidationError for anything else that
    is not 8-15 digits.
    """
    cleaned = _MOBILE_SEPARATORS.sub("", raw or "")
    if cleaned.startswith("+"):
        digits = cleaned[1:]
    elif cleaned.startswith("00"):
        digits = cleaned[2:]
    elif len(cleaned) == NATIONAL_NUMBER_LENGTH:
        digits = f"{default_country_code}{cleaned}"
    else:
        digits = cleaned
    if not _E164_DIGITS.match(digits):
        raise ValidationError("Mobile number must be 8-15 digits")
    return f"+{digits}"


def mask_mobile(mobile: str) -> str:
    """Mask a mobile number for logs, keeping only the last four digits."""
    if len(mobile) <= 4:
        return "****"
    return "****" + mobile[-4:]


def generate_otp_code(length: int) -> str:
    """Return a uniformly random numeric code of exactly ``length`` digits."""
    return "".join(secrets.choice("0123456789") for _ in range(length))


def codes_match(supplied: str, stored: str) -> bool:
    """Compare two codes in constant time."""
    return hmac.compare_digest(supplied.encode("utf-8"), stored.encode("utf-8"))


def generate_session_token() -> str:
    """Generate an unguessable URL-safe voting session token."""
    return secrets.token_urlsafe(SESSION_TOKEN_BYTES)


def generate_nonce() -> str:
    """Generate the anonymization nonce stored with each ballot."""
    return secrets.token_hex(NONCE_BYTES)


def _receipt_key(secret_key: str) -> bytes:
    return hashlib.sha256(secret_key.encode("utf-8")).digest()


def receipt_digest(
    secret_key: str,
    *,
    ballot_id: str,
    election_id: str,
    choice: str,
    cast_at: datetime,
    nonce: str,
) -> str:
    """Return the receipt for a ballot row as a keyed BLAKE3 hex digest."""
    payload = "|".join((ballot_id, election_id, choice, cast_at.isoformat(), nonce))
    return blake3.blake3(payload.encode("utf-8"), key=_receipt_key(secret_key)).hexdigest()
