"""
End-to-end checks through the HTTP layer.

The app runs on its own event loop inside TestClient, so these tests use a
dedicated engine whose schema is created on that loop.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from netgains.common import get_current_user
from netgains.database import Base
from netgains.init_db import get_db
from netgains.main import app

from .conftest import make_engine


@pytest.fixture
def client():
    engine = make_engine()
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    caller = {"uid": "alice"}

    async def override_get_db():
        async with session_factory() as session:
            yield session

    async def create_schema():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: dict(caller)
    with TestClient(app) as test_client:
        test_client.portal.call(create_schema)
        test_client.caller = caller
        yield test_client
        test_client.portal.call(engine.dispose)
    app.dependency_overrides.clear()


def act_as(client, uid):
    client.caller["uid"] = uid


def sign_up(client, uid, name, phone):
    act_as(client, uid)
    response = client.post("/me", json={"name": name, "phone": phone})
    assert response.status_code == 200
    return response.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_me_round_trip(client):
    act_as(client, "alice")
    assert client.get("/me").status_code == 404

    sign_up(client, "alice", "Alice", "+15550001111")
    me = client.get("/me").json()
    assert me["id"] == "alice"
    assert me["phone"] == "+15550001111"


def test_group_invite_by_sms_through_approval(client):
    sign_up(client, "alice", "Alice", "+15550001111")
    group = client.post("/groups", json={"name": "Dink Club"}).json()
    assert group["member_count"] == 1

    sent = client.post("/invitations/send", json={
        "owner": {"owner_type": "group", "owner_id": group["id"]},
        "invites": [{"invitee_name": "Dana", "invitee_phone": "+15550100100"}],
    })
    assert sent.status_code == 200
    batch = sent.json()
    assert batch["failed"] == []
    deep_link = batch["sms"][0]["deep_link"]
    assert "phone=%2B15550100100" in deep_link

    sign_up(client, "dana", "Dana", "+15550100100")
    found = client.post("/invitations/lookup", json={"link": deep_link}).json()
    assert found["id"] == batch["created"][0]["id"]

    responded = client.post(f"/invitations/{found['id']}/respond", json={"response": "accepted"})
    assert responded.status_code == 200
    assert responded.json()["invitee_id"] == "dana"

    act_as(client, "alice")
    pending = client.get(f"/groups/{group['id']}/pending-approvals").json()
    assert [m["user_id"] for m in pending] == ["dana"]
    assert pending[0]["is_active"] is False

    approved = client.post(f"/groups/members/{pending[0]['id']}/approve")
    assert approved.json()["is_active"] is True
    assert client.get(f"/groups/{group['id']}").json()["member_count"] == 2

    friends = client.get("/friends").json()
    assert [f["id"] for f in friends] == ["dana"]


def test_domain_errors_map_to_status_codes(client):
    sign_up(client, "alice", "Alice", "+15550001111")

    missing = client.get("/posts/does-not-exist")
    assert missing.status_code == 404
    assert missing.json() == {"detail": "Post not found"}

    assert client.post("/invitations/whatever/respond", json={"response": "pending"}).status_code == 422
    assert client.post("/invitations/whatever/respond", json={"response": "accepted"}).status_code == 404

    group = client.post("/groups", json={"name": "Dink Club"}).json()
    sign_up(client, "bob", "Bob", "+15550002222")
    denied = client.patch(f"/groups/{group['id']}", json={"name": "Bob's club"})
    assert denied.status_code == 403


def test_post_with_attachments_and_replies(client, storage):
    sign_up(client, "alice", "Alice", "+15550001111")
    group = client.post("/groups", json={"name": "Dink Club"}).json()
    discussion = client.post(f"/discussions/group/{group['id']}/open").json()
    assert discussion["participant_ids"] == ["alice"]

    created = client.post(
        "/posts",
        data={"discussion_id": discussion["id"], "title": "Rules", "content": "House rules attached"},
        files=[("files", ("rules.pdf", b"%PDF-1.4", "application/pdf"))],
    )
    assert created.status_code == 200
    body = created.json()
    assert body["failed_attachments"] == []
    assert [a["file_name"] for a in body["attachments"]] == ["rules.pdf"]
    assert len(storage.objects) == 1
    post_id = body["post"]["id"]

    reply = client.post("/replies", data={"post_id": post_id, "content": "Got it"})
    assert reply.status_code == 200

    threads = client.get(f"/posts/{post_id}/replies").json()
    assert [t["content"] for t in threads] == ["Got it"]
    assert client.get(f"/posts/{post_id}").json()["reply_count"] == 1

    reaction = client.post(f"/posts/{post_id}/reactions", json={"reaction_type": "👍"}).json()
    assert reaction["created"] is True
    assert client.delete(f"/posts/{post_id}/reactions/👍").json() == {"removed": True}

    unread = client.get(f"/discussions/{discussion['id']}/unread-count").json()
    assert unread["unread_count"] == 1
    client.post(f"/discussions/{discussion['id']}/read")
    assert client.get(f"/discussions/{discussion['id']}/unread-count").json()["unread_count"] == 0


def test_check_contacts(client):
    sign_up(client, "bob", "Bob", "+15550002222")
    sign_up(client, "alice", "Alice", "+15550001111")

    checks = client.post("/friends/check-contacts", json={"phone_numbers": ["+15550002222", "555-0199"]}).json()
    assert [(c["phone_number"], c["is_registered"]) for c in checks] == [
        ("+15550002222", True),
        ("555-0199", False),
    ]


def test_outsider_is_kept_out_of_a_discussion(client, storage):
    sign_up(client, "carol", "Carol", "+15550003333")
    sign_up(client, "alice", "Alice", "+15550001111")
    group = client.post("/groups", json={"name": "Dink Club"}).json()
    discussion = client.post(f"/discussions/group/{group['id']}/open").json()
    post = client.post("/posts", data={"discussion_id": discussion["id"], "content": "Ladder night"}).json()["post"]

    act_as(client, "carol")
    assert client.post(f"/discussions/{discussion['id']}/join").status_code == 403
    assert client.get(f"/discussions/{discussion['id']}").status_code == 403
    assert client.get(f"/discussions/{discussion['id']}/posts").status_code == 403
    assert client.get(f"/discussions/{discussion['id']}/search", params={"q": "ladder"}).status_code == 403
    assert client.get(f"/posts/{post['id']}").status_code == 403
    assert client.get(f"/posts/{post['id']}/replies").status_code == 403
    assert client.get(f"/attachments/post/{post['id']}").status_code == 403

    upload = client.post(
        f"/attachments/post/{post['id']}",
        files=[("files", ("rules.pdf", b"%PDF-1.4", "application/pdf"))],
    )
    assert upload.status_code == 403
    assert storage.objects == {}

    act_as(client, "alice")
    upload = client.post(
        f"/attachments/post/{post['id']}",
        files=[("files", ("rules.pdf", b"%PDF-1.4", "application/pdf"))],
    )
    assert [a["file_name"] for a in upload.json()["attachments"]] == ["rules.pdf"]


def test_delete_group(client):
    sign_up(client, "bob", "Bob", "+15550002222")
    sign_up(client, "alice", "Alice", "+15550001111")
    group = client.post("/groups", json={"name": "Dink Club"}).json()

    act_as(client, "bob")
    assert client.delete(f"/groups/{group['id']}").status_code == 403

    act_as(client, "alice")
    assert client.delete(f"/groups/{group['id']}").json() == {"message": "Group deleted", "id": group["id"]}
    assert client.get(f"/groups/{group['id']}").status_code == 404
    assert client.get("/groups").json() == []
