import json
from datetime import datetime, timedelta, timezone

import pytest
from svix.webhooks import Webhook

from blog_api.errors import SignatureInvalid, UpstreamFailure, ValidationFailed
from blog_api.identity_events import build_webhook, verify_event
from blog_api.models import Favorite, Post, User
from tests.conftest import WEBHOOK_SECRET

webhook = Webhook(WEBHOOK_SECRET)


def signed_headers(
    body: bytes, msg_id: str = "msg_1", sent_at: datetime | None = None
) -> dict[str, str]:
    sent_at = sent_at or datetime.now(timezone.utc)
    return {
        "svix-id": msg_id,
        "svix-timestamp": str(int(sent_at.timestamp())),
        "svix-signature": webhook.sign(msg_id, sent_at, body.decode()),
        "content-type": "application/json",
    }


def user_event(event_type: str, user_id: str = "u1", **fields) -> bytes:
    data = {"id": user_id, "object": "user", **fields}
    return json.dumps({"type": event_type, "object": "event", "data": data}).encode()


async def post_event(client, body: bytes, headers: dict[str, str] | None = None):
    return await client.post(
        "/webhooks/clerk",
        content=body,
        headers=signed_headers(body) if headers is None else headers,
    )


async def get_user(session_factory, user_id: str):
    async with session_factory() as session:
        return await session.get(User, user_id)


# ── Signature verification ───────────────────────────────────────────────

def test_verified_body_is_parsed_into_an_event():
    body = user_event("user.created")
    event = verify_event(webhook, body, signed_headers(body))
    assert event.type == "user.created"
    assert event.data["id"] == "u1"


def test_accepts_any_matching_signature_in_the_header():
    body = b'{"type": "user.created", "data": {}}'
    headers = signed_headers(body)
    headers["svix-signature"] = "v1,bm90LWl0 " + headers["svix-signature"]
    assert verify_event(webhook, body, headers).type == "user.created"


def test_rejects_tampered_body():
    headers = signed_headers(b'{"type": "user.created", "data": {}}')
    with pytest.raises(SignatureInvalid):
        verify_event(webhook, b'{"type": "user.deleted", "data": {}}', headers)


def test_rejects_stale_timestamp():
    body = b"{}"
    headers = signed_headers(body, sent_at=datetime.now(timezone.utc) - timedelta(hours=1))
    with pytest.raises(SignatureInvalid):
        verify_event(webhook, body, headers)


def test_rejects_missing_headers():
    with pytest.raises(SignatureInvalid, match="Missing"):
        verify_event(webhook, b"{}", {"svix-id": "msg_1"})


def test_rejects_malformed_signature_header():
    body = b"{}"
    headers = signed_headers(body)
    headers["svix-signature"] = "garbage"
    with pytest.raises(SignatureInvalid):
        verify_event(webhook, body, headers)


def test_signed_body_that_is_not_an_event_is_a_validation_error():
    body = b'["not", "an", "event"]'
    with pytest.raises(ValidationFailed):
        verify_event(webhook, body, signed_headers(body))


def test_missing_secret_is_a_server_fault():
    with pytest.raises(UpstreamFailure, match="not configured"):
        build_webhook("")


def test_secret_that_is_not_base64_is_refused():
    with pytest.raises(UpstreamFailure, match="invalid"):
        build_webhook("whsec_not*base64")


# ── Endpoint ─────────────────────────────────────────────────────────────

async def test_bad_signature_is_rejected_without_writes(client, session_factory):
    body = user_event("user.created", email_addresses=[{"email_address": "a@b.com"}])
    headers = signed_headers(body)
    headers["svix-signature"] = "v1,AAAA"

    resp = await post_event(client, body, headers)
    assert resp.status_code == 400
    assert resp.json() == {"message": "Invalid signature"}
    assert await get_user(session_factory, "u1") is None


async def test_user_created_then_updated(client, session_factory):
    created = await post_event(
        client, user_event("user.created", email_addresses=[{"email_address": "a@b.com"}])
    )
    assert created.status_code == 200
    assert created.json()["message"] == "User created successfully"

    user = await get_user(session_factory, "u1")
    assert user.email == "a@b.com"
    assert user.first_name is None
    assert user.last_name is None
    assert user.image_url is None
    first_stamp = user.updated_at

    updated = await post_event(
        client,
        user_event(
            "user.updated",
            email_addresses=[{"email_address": "a@b.com"}],
            first_name="Jane",
            last_name="",
        ),
    )
    assert updated.status_code == 200
    user = await get_user(session_factory, "u1")
    assert user.first_name == "Jane"
    assert user.last_name is None
    assert user.email == "a@b.com"
    assert user.updated_at >= first_stamp


async def test_update_of_unknown_user_is_an_integrity_error(client, session_factory):
    resp = await post_event(
        client, user_event("user.updated", user_id="ghost", email_addresses=[])
    )
    assert resp.status_code == 500
    assert resp.json()["message"] == "Failed to update user in database"
    assert await get_user(session_factory, "ghost") is None


async def test_user_deleted_removes_user_posts_and_favorites(
    client, users, add_post, session_factory
):
    alice_post = await add_post("alice")
    bob_post = await add_post("bob")
    async with session_factory() as session:
        session.add_all(
            [
                Favorite(user_id="bob", post_id=alice_post),
                Favorite(user_id="alice", post_id=bob_post),
            ]
        )
        await session.commit()

    resp = await post_event(client, user_event("user.deleted", user_id="alice", deleted=True))
    assert resp.status_code == 200
    assert resp.json()["message"] == "User deleted successfully"

    async with session_factory() as session:
        assert await session.get(User, "alice") is None
        assert await session.get(Post, alice_post) is None
        assert await session.get(Post, bob_post) is not None
        assert await session.get(Favorite, ("bob", alice_post)) is None
        assert await session.get(Favorite, ("alice", bob_post)) is None


async def test_user_deleted_without_id_is_a_validation_error(client):
    body = json.dumps({"type": "user.deleted", "data": {"deleted": True}}).encode()
    resp = await post_event(client, body)
    assert resp.status_code == 400
    assert resp.json()["message"] == "User ID not found in webhook data"


async def test_unknown_event_types_are_acknowledged(client, session_factory):
    body = json.dumps({"type": "session.created", "data": {"id": "sess_1"}}).encode()
    resp = await post_event(client, body)
    assert resp.status_code == 200
    assert resp.json() == {"message": "Event type not handled"}


async def test_malformed_payload_after_valid_signature(client):
    resp = await post_event(client, b"not json")
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid event payload"


async def test_unconfigured_secret_rejects_every_delivery(app, client, session_factory):
    app.state.settings = app.state.settings.model_copy(update={"clerk_webhook_secret": ""})
    resp = await post_event(client, user_event("user.created", email_addresses=[]))
    assert resp.status_code == 500
    assert resp.json()["message"] == "Webhook secret is not configured"
    assert await get_user(session_factory, "u1") is None
