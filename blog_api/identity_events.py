"""
Identity webhook consumer.

The identity provider delivers user lifecycle events through Svix-signed
webhooks. The signature is checked over the raw body with the ``svix``
library before anything in it is trusted; verified events then keep the
local ``users`` table in step with the provider:

  user.created — insert the mirror row (id is the provider's id)
  user.updated — overwrite email / names / avatar, stamp updated_at
  user.deleted — remove the user together with their posts and favorites
  anything else — acknowledged, no writes
"""
import binascii
import json
import logging
from datetime import datetime, timezone
from typing import Mapping, Optional

from opentelemetry import trace
from pydantic import ValidationError
from svix.webhooks import Webhook, WebhookVerificationError

from blog_api.errors import (
    DataIntegrityError,
    SignatureInvalid,
    UpstreamFailure,
    ValidationFailed,
)
from blog_api.repository import UserRepository
from blog_api.schemas import IdentityEvent, IdentityUserData
from blog_api.telemetry import WEBHOOK_EVENTS_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

SVIX_HEADERS = ("svix-id", "svix-timestamp", "svix-signature")


def build_webhook(secret: str) -> Webhook:
    """Create the svix verifier; a missing or malformed secret is a server fault."""
    if not secret:
        raise UpstreamFailure("Webhook secret is not configured")
    try:
        return Webhook(secret)
    except (binascii.Error, ValueError) as exc:
        raise UpstreamFailure("Webhook secret is invalid", err=exc) from exc


def verify_event(webhook: Webhook, body: bytes, headers: Mapping[str, str]) -> IdentityEvent:
    """
    Verify ``body`` against the svix headers and parse it into an event.

    Raises ``SignatureInvalid`` for missing headers, a stale timestamp or
    no matching signature, and ``ValidationFailed`` when a correctly
    signed body is not a valid event.
    """
    svix_headers = {name: headers.get(name) for name in SVIX_HEADERS}
    if not all(svix_headers.values()):
        raise SignatureInvalid("Missing svix headers")

    try:
        payload = webhook.verify(body, svix_headers)
    except json.JSONDecodeError as exc:
        # svix parses the body only after the signature matched
        raise ValidationFailed({"body": "Invalid event payload"}, "Invalid event payload") from exc
    except (WebhookVerificationError, ValueError) as exc:
        logger.warning("Webhook signature verification failed: %s", exc)
        raise SignatureInvalid() from exc

    try:
        return IdentityEvent.model_validate(payload)
    except ValidationError as exc:
        raise ValidationFailed({"body": "Invalid event payload"}, "Invalid event payload") from exc


class IdentityEventConsumer:
    def __init__(self, users: UserRepository) -> None:
        self.users = users

    async def handle(self, event: IdentityEvent) -> str:
        """Apply one verified event; returns the acknowledgement message."""
        WEBHOOK_EVENTS_TOTAL.labels(event_type=event.type).inc()
        logger.info("Received webhook event: %s", event.type)

        with tracer.start_as_current_span("identity_event") as span:
            span.set_attribute("event.type", event.type)
            if event.type == "user.created":
                return await self._created(self._user_data(event))
            if event.type == "user.updated":
                return await self._updated(self._user_data(event))
            if event.type == "user.deleted":
                return await self._deleted(event.data.get("id"))

        logger.info("Unhandled event type: %s", event.type)
        return "Event type not handled"

    @staticmethod
    def _user_data(event: IdentityEvent) -> IdentityUserData:
        try:
            data = IdentityUserData.model_validate(event.data)
        except ValidationError as exc:
            raise ValidationFailed({"data": "Invalid user payload"}, "Invalid event payload") from exc
        if not data.id:
            raise ValidationFailed({"id": "User ID is required"}, "User ID not found in webhook data")
        return data

    @staticmethod
    def _mirrored_fields(data: IdentityUserData) -> dict:
        return {
            "email": data.primary_email,
            "first_name": data.first_name or None,
            "last_name": data.last_name or None,
            "image_url": data.image_url or None,
        }

    async def _created(self, data: IdentityUserData) -> str:
        await self.users.create(id=data.id, **self._mirrored_fields(data))
        logger.info("User created in database: %s", data.id)
        return "User created successfully"

    async def _updated(self, data: IdentityUserData) -> str:
        user = await self.users.update(
            data.id,
            updated_at=datetime.now(timezone.utc),
            **self._mirrored_fields(data),
        )
        if user is None:
            raise DataIntegrityError(
                "Failed to update user in database",
                err=f"no local user with id {data.id}",
            )
        logger.info("User updated in database: %s", data.id)
        return "User updated successfully"

    async def _deleted(self, user_id: Optional[str]) -> str:
        if not user_id:
            raise ValidationFailed({"id": "User ID is required"}, "User ID not found in webhook data")
        if not await self.users.delete_with_content(user_id):
            raise DataIntegrityError(
                "Failed to delete user from database",
                err=f"no local user with id {user_id}",
            )
        logger.info("User deleted from database: %s", user_id)
        return "User deleted successfully"
