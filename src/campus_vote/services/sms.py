"""SMS gateway clients used to deliver one-time codes.

Supports Twilio, Fast2SMS, or console-only delivery for development. The
message body (which contains the code) is never written to logs except by
the console provider outside production.
"""

from __future__ import annotations

import logging
from threading import Lock

import httpx

from campus_vote.core.security import mask_mobile
from campus_vote.core.settings import Settings

logger = logging.getLogger(__name__)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"
FAST2SMS_URL = "https://www.fast2sms.com/dev/bulkV2"


class SmsGatewayError(RuntimeError):
    """Base exception raised when a provider rejects or cannot take a message."""


class SmsGateway:
    """Fire-and-forget delivery of a text message to a mobile number.

    ``send`` reports delivered/failed as a bool; retries, if any, belong to the
    provider and never to the caller.
    """

    provider = "abstract"

    def send(self, mobile: str, message: str) -> bool:
        try:
            self._deliver(mobile, message)
        except (SmsGatewayError, httpx.HTTPError, ValueError) as exc:
            logger.error(
                "SMS delivery via %s failed for %s: %s",
                self.provider,
                mask_mobile(mobile),
                type(exc).__name__,
            )
            return False
        return True

    def _deliver(self, mobile: str, message: str) -> None:
        raise NotImplementedError

    def close(self) -> None:
        """Release any pooled connections."""


class ConsoleSmsGateway(SmsGateway):
    """Development provider that prints the message instead of sending it."""

    provider = "console"

    def __init__(self, *, production: bool = False) -> None:
        self._production = production

    def _deliver(self, mobile: str, message: str) -> None:
        if self._production:
            logger.warning("SMS_PROVIDER=console in production; message for %s not shown",
                           mask_mobile(mobile))
            return
        logger.info("DEV MODE SMS to %s: %s", mobile, message)


class _HttpSmsGateway(SmsGateway):
    """Shared lazily-created httpx client for HTTP providers."""

    def __init__(
        self, timeout_seconds: float, transport: httpx.BaseTransport | None = None
    ) -> None:
        self._timeout = timeout_seconds
        self._transport = transport
        self._client: httpx.Client | None = None
        self._client_lock = Lock()

    def _ensure_client(self) -> httpx.Client:
        with self._client_lock:
            if self._client is None:
                self._client = httpx.Client(
                    timeout=httpx.Timeout(self._timeout), transport=self._transport
                )
            return self._client

    def close(self) -> None:
        with self._client_lock:
            if self._client is not None:
                self._client.close()
                self._client = None


class TwilioSmsGateway(_HttpSmsGateway):
    """Send messages through the Twilio REST API."""

    provider = "twilio"

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        *,
        timeout_seconds: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(timeout_seconds, transport)
        self._account_sid = account_sid
        self._auth_token = auth_token
        self._from_number = from_number

    def _deliver(self, mobile: str, message: str) -> None:
        client = self._ensure_client()
        response = client.post(
            f"{TWILIO_API_BASE}/Accounts/{self._account_sid}/Messages.json",
            data={"To": mobile, "From": self._from_number, "Body": message},
            auth=(self._account_sid, self._auth_token),
        )
        if response.is_error:
            raise SmsGatewayError(f"Twilio responded with {response.status_code}")
        logger.info(
            "SMS sent via Twilio to %s (sid %s)",
            mask_mobile(mobile),
            response.json().get("sid", "n/a"),
        )


class Fast2SmsGateway(_HttpSmsGateway):
    """Send messages through the Fast2SMS bulk API (India)."""

    provider = "fast2sms"

    def __init__(
        self,
        api_key: str,
        *,
        timeout_seconds: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(timeout_seconds, transport)
        self._api_key = api_key

    def _deliver(self, mobile: str, message: str) -> None:
        client = self._ensure_client()
        response = client.post(
            FAST2SMS_URL,
            headers={"authorization": self._api_key},
            json={
                "route": "q",
                "message": message,
                # Fast2SMS expects national numbers without the +91 prefix.
                "numbers": mobile.removeprefix("+91").lstrip("+"),
                "flash": 0,
            },
        )
        if response.is_error:
            raise SmsGatewayError(f"Fast2SMS responded with {response.status_code}")
        payload = response.json()
        if not payload.get("return"):
            raise SmsGatewayError("Fast2SMS rejected the message")
        logger.info(
            "SMS sent via Fast2SMS to %s (request %s)",
            mask_mobile(mobile),
            payload.get("request_id", "n/a"),
        )


def build_sms_gateway(config: Settings) -> SmsGateway:
    """Return the gateway selected by ``SMS_PROVIDER``."""
    provider = config.sms_provider.lower()
    if provider == "twilio":
        if not (config.twilio_account_sid and config.twilio_auth_token
                and config.twilio_from_number):
            raise ValueError("Twilio credentials are not configured")
        return TwilioSmsGateway(
            config.twilio_account_sid,
            config.twilio_auth_token,
            config.twilio_from_number,
            timeout_seconds=config.sms_http_timeout_seconds,
        )
    if provider == "fast2sms":
        if not config.fast2sms_api_key:
            raise ValueError("Fast2SMS API key is not configured")
        return Fast2SmsGateway(
            config.fast2sms_api_key,
            timeout_seconds=config.sms_http_timeout_seconds,
        )
    if provider == "console":
        return ConsoleSmsGateway(production=config.is_production)
    raise ValueError(f"Unknown SMS provider: {config.sms_provider!r}")
