"""
Messaging carrier client (Twilio-compatible WhatsApp API).

Sends messages over the carrier's REST API and validates the signature on
inbound webhook requests.

Example:
    client = CarrierClient(settings.carrier_config())
    sid = await client.send_message("+254700000001", "Hi Amina! How was your week?")
"""

import base64
import hashlib
import hmac
import logging
from typing import Optional, Dict, Mapping

import httpx

from config.messaging_config import TWILIO_MESSAGES_PATH, WHATSAPP_ADDRESS_PREFIX
from moodpulse.config import CarrierConfig

logger = logging.getLogger(__name__)


class CarrierError(Exception):
    """The carrier rejected a request or returned an unusable response."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(message)


def normalize_address(address: str) -> str:
    """Ensure a phone number carries the whatsapp: channel prefix."""
    address = (address or "").strip()
    if not address:
        return address
    if address.startswith(WHATSAPP_ADDRESS_PREFIX):
        return address
    return f"{WHATSAPP_ADDRESS_PREFIX}{address}"


def strip_address_prefix(address: str) -> str:
    """Plain phone number from a carrier address."""
    address = (address or "").strip()
    if address.startswith(WHATSAPP_ADDRESS_PREFIX):
        return address[len(WHATSAPP_ADDRESS_PREFIX):]
    return address


def compute_signature(auth_token: str, url: str, params: Mapping[str, str]) -> str:
    """
    Carrier request signature.

    HMAC-SHA1 keyed with the auth token over the full URL followed by every
    POST parameter name and value, sorted by name, base64 encoded.
    """
    payload = url + "".join(f"{key}{params[key]}" for key in sorted(params))
    digest = hmac.new(auth_token.encode("utf-8"), payload.encode("utf-8"), hashlib.sha1).digest()
    return base64.b64encode(digest).decode("ascii")


class CarrierClient:
    """
    Thin async client for the carrier's messages endpoint.
    """

    def __init__(
        self,
        config: CarrierConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 15.0,
    ):
        """
        Initialize CarrierClient.

        Args:
            config: Carrier credentials (validated here)
            http_client: Shared client, mainly for tests
            timeout: HTTP timeout for each request

        Raises:
            ConfigurationError: Missing or placeholder credentials
        """
        config.validate()
        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._messages_url = config.api_base_url.rstrip("/") + TWILIO_MESSAGES_PATH.format(
            account_sid=config.account_sid
        )

    @property
    def sender(self) -> str:
        return normalize_address(self._config.sender_number)

    async def send_message(self, to: str, body: str) -> str:
        """
        Send one message.

        Args:
            to: Recipient phone number (with or without whatsapp: prefix)
            body: Message text

        Returns:
            Provider message id

        Raises:
            CarrierError: Carrier rejected the message
            httpx.HTTPError: Network failure
        """
        if not to or not to.strip():
            raise CarrierError("Recipient address is empty", code="INVALID_ADDRESS")

        response = await self._client.post(
            self._messages_url,
            data={
                "From": self.sender,
                "To": normalize_address(to),
                "Body": body,
            },
            auth=(self._config.account_sid, self._config.auth_token),
        )

        if response.status_code >= 400:
            try:
                payload = response.json()
            except ValueError:
                payload = {}
            message = payload.get("message") or f"Carrier returned HTTP {response.status_code}"
            raise CarrierError(
                message,
                status_code=response.status_code,
                code=str(payload.get("code")) if payload.get("code") else None,
            )

        sid = response.json().get("sid")
        if not sid:
            raise CarrierError("Carrier response did not include a message id")

        return sid

    def validate_signature(self, url: str, params: Mapping[str, str], signature: Optional[str]) -> bool:
        """Check an inbound webhook signature in constant time."""
        if not signature:
            return False
        expected = compute_signature(self._config.auth_token, url, params)
        return hmac.compare_digest(expected, signature)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def form_to_dict(form: Mapping[str, str]) -> Dict[str, str]:
    """Flatten a form payload into str -> str for signing."""
    return {str(k): str(v) for k, v in form.items()}
