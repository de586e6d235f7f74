"""RPA webhook client for quote payload delivery."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..exceptions import DeliveryError, RejectedByReceiverError
from ..webhook import WebhookPayload, WebhookResponse, validate_payload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmissionResult:
    """Successful delivery, correlated by the receiver's job id."""

    job_id: str | None
    message: str | None = None


class WebhookService:
    """
    Delivers validated payloads to the RPA endpoint.

    There is no retry here: the receiver may create a job for every POST it
    accepts, so resubmission is left to the caller.
    """

    def __init__(
        self,
        url: str,
        api_key: str | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self.headers = {"Content-Type": "application/json"}
        if api_key:
            self.headers["Authorization"] = f"Bearer {api_key}"
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "WebhookService | None":
        """Build a client for the configured endpoint, or None if none is set."""
        if not settings.webhook_url:
            return None
        return cls(
            url=settings.webhook_url,
            api_key=settings.webhook_api_key,
            timeout=settings.webhook_timeout_seconds,
        )

    async def _post(self, body: dict[str, Any]) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(
                self.url, json=body, headers=self.headers, timeout=self.timeout
            )
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(self.url, json=body, headers=self.headers)

    async def submit(self, payload: WebhookPayload | Mapping[str, Any]) -> SubmissionResult:
        """
        POST a payload and interpret the receiver's reply.

        Args:
            payload: A payload model or its raw camelCase mapping. It is
                validated again before anything is sent.

        Returns:
            The receiver's job id and message.

        Raises:
            InvalidPayloadError: If the payload is not valid (no request is made).
            DeliveryError: On transport failure, non-2xx status or an unreadable reply.
            RejectedByReceiverError: If the receiver answers ``success: false``.
        """
        validated = validate_payload(payload)
        metadata = validated.metadata

        logger.info(
            "Submitting quote %s (%s) for extraction %s",
            metadata.quote_id,
            metadata.quote_type.value,
            metadata.extraction_id,
        )

        try:
            response = await self._post(validated.to_wire())
        except httpx.HTTPError as e:
            logger.error("Webhook transport error for quote %s: %s", metadata.quote_id, e)
            raise DeliveryError(f"Webhook request failed: {type(e).__name__}") from e

        if not response.is_success:
            logger.error(
                "Webhook returned HTTP %d for quote %s",
                response.status_code,
                metadata.quote_id,
            )
            raise DeliveryError(
                f"Webhook returned HTTP {response.status_code}",
                upstream_status=response.status_code,
            )

        try:
            reply = WebhookResponse.model_validate_json(response.content)
        except ValidationError as e:
            logger.error("Unreadable webhook reply for quote %s: %s", metadata.quote_id, e)
            raise DeliveryError(
                "Webhook reply is not a valid response body",
                upstream_status=response.status_code,
            ) from e

        if not reply.success:
            logger.warning(
                "Quote %s rejected by receiver: %s",
                metadata.quote_id,
                reply.errors or reply.message,
            )
            raise RejectedByReceiverError(reply.errors, message=reply.message)

        logger.info("Quote %s accepted as job %s", metadata.quote_id, reply.job_id)
        return SubmissionResult(job_id=reply.job_id, message=reply.message)
