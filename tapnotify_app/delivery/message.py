"""Templated text messages through a third-party messaging provider."""

from enum import Enum
from typing import Optional
from urllib.parse import urlencode

import orjson

from ..config.actions import ActionDefinition
from ..config.defaults import MessagingParams
from ..config.validation import ConfigValidator
from .base import BaseDelivery
from .transport import HttpResponse, HttpTransport

TEXTBELT_URL = "https://textbelt.com/text"
CALLMEBOT_URL = "https://api.callmebot.com/whatsapp.php"
WHAPI_URL = "https://gate.whapi.cloud/messages/text"


class MessageProvider(str, Enum):
    """Supported messaging providers."""
    TEXTBELT = "textbelt"
    CALLMEBOT = "callmebot"
    WHAPI = "whapi"


class MessageDelivery(BaseDelivery):
    """Sends a message to every configured phone number."""

    def __init__(self, transport: HttpTransport, params: Optional[MessagingParams] = None):
        super().__init__("message", params or MessagingParams())
        self.transport = transport
        self.params: MessagingParams = self.config

    @property
    def provider(self) -> MessageProvider:
        return MessageProvider(self.params.provider)

    async def send(self, action: ActionDefinition, message_text: str = "") -> bool:
        return await self.send_message(message_text)

    async def send_message(self, text: str) -> bool:
        """
        Send text to every configured number.

        Returns:
            True only when there is at least one valid number and every
            provider call answered with 2xx
        """
        if not text.strip():
            self.logger.warning("Refusing to send an empty message")
            return False

        numbers = []
        for raw in self.params.phone_numbers:
            valid, digits = ConfigValidator.validate_phone_number(raw)
            if valid and digits:
                numbers.append(digits)
            else:
                self.logger.warning("Skipping invalid phone number", phone_number=raw)

        if not numbers:
            self.logger.warning("No phone number configured for messages")
            return False

        results = []
        for digits in numbers:
            try:
                response = await self._send_one(digits, text)
            except Exception as e:
                self.logger.error(
                    "Message transport failed",
                    provider=self.params.provider,
                    error=str(e)
                )
                results.append(False)
                continue

            if not response.ok:
                self.logger.warning(
                    "Message rejected",
                    provider=self.params.provider,
                    status_code=response.status_code
                )
            results.append(response.ok)

        return all(results)

    async def _send_one(self, digits: str, text: str) -> HttpResponse:
        provider = self.provider

        if provider == MessageProvider.TEXTBELT:
            body = urlencode({
                "phone": f"+{digits}",
                "message": text,
                "key": self.params.api_key,
            }).encode("utf-8")
            return await self.transport.apost(
                TEXTBELT_URL,
                {"Content-Type": "application/x-www-form-urlencoded"},
                body
            )

        if provider == MessageProvider.CALLMEBOT:
            query = urlencode({
                "phone": f"+{digits}",
                "text": text,
                "apikey": self.params.api_key,
            })
            return await self.transport.arequest("GET", f"{CALLMEBOT_URL}?{query}")

        return await self.transport.apost(
            WHAPI_URL,
            {
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.params.api_key}",
            },
            orjson.dumps({"to": digits, "body": text})
        )
