from decimal import Decimal

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import models
from app.api.auth import create_access_token
from app.api.dependencies import get_db
from app.main import app
from app.models.base import BaseModel
from app.models.booking_status import BookingStatus


def setup_app():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    BaseModel.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, expire_on_commit=False)

    def override_db():
        db = Session()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_db
    return Session


def seed(Session):
    db = Session()
    users = {}
    for key, role in (
        ("artist", models.UserRole.ARTIST),
        ("organizer", models.UserRole.ORGANIZER),
        ("outsider", models.UserRole.ORGANIZER),
    ):
        user = models.User(
            email=f"{key}@test.com",
            password="x",
            first_name=key.title(),
            last_name="Test",
            role=role,
        )
        db.add(user)
        db.flush()
        users[key] = user
    artist = models.Artist(user_id=users["artist"].id, name="DJ Nova")
    organizer = models.Organizer(user_id=users["organizer"].id)
    db.add_all([artist, organizer])
    db.flush()
    event = models.Event(title="Rooftop Sessions", organizer_id=organizer.id)
    db.add(event)
    db.flush()
    booking = models.Booking(
        event_id=event.id, artist_id=artist.id, offer_amount=Decimal("12000"), offer_currency="USD"
    )
    db.add(booking)
    db.commit()
    ids = {key: user.id for key, user in users.items()}
    ids["booking"] = booking.id
    db.close()
    return ids


def auth(key):
    token = create_access_token({"sub": f"{key}@test.com"})
    return {"Authorization": f"Bearer {token}"}


def open_negotiation(client, booking_id, key="artist"):
    return client.post(
        f"/api/v1/entities/booking/{booking_id}/conversation/negotiation/open",
        headers=auth(key),
    )


def test_requires_authentication():
    setup_app()
    client = TestClient(app)
    res = client.get("/api/v1/conversations")
    assert res.status_code == 401


def test_open_and_read_negotiation():
    Session = setup_app()
    ids = seed(Session)
    client = TestClient(app)

    res = open_negotiation(client, ids["booking"])
    assert res.status_code == 200
    convo = res.json()
    assert convo["conversation_type"] == "negotiation"
    assert convo["subject"] == "Negotiation: DJ Nova"

    again = open_negotiation(client, ids["booking"], key="organizer")
    assert again.status_code == 200
    assert again.json()["id"] == convo["id"]

    res = client.get(f"/api/v1/conversations/{convo['id']}", headers=auth("organizer"))
    assert res.status_code == 200
    detail = res.json()
    assert detail["participant_ids"] == [ids["artist"], ids["organizer"]]
    workflow = detail["workflow_instance"]
    assert workflow["current_node_key"] == "WAITING_FIRST_MOVE"
    assert workflow["awaiting_user_id"] == ids["organizer"]
    assert workflow["round"] == 0
    assert workflow["locked"] is False

    res = client.get(f"/api/v1/conversations/{convo['id']}", headers=auth("outsider"))
    assert res.status_code == 403


def test_open_unknown_booking_returns_404():
    Session = setup_app()
    seed(Session)
    client = TestClient(app)
    res = open_negotiation(client, 999)
    assert res.status_code == 404
    assert res.json()["detail"]["message"] == "Booking not found"


def test_actions_over_http():
    Session = setup_app()
    ids = seed(Session)
    client = TestClient(app)
    convo_id = open_negotiation(client, ids["booking"]).json()["id"]
    url = f"/api/v1/conversations/{convo_id}/actions"

    res = client.post(
        url,
        json={"action_key": "PROPOSE_CHANGE", "inputs": {"offerAmount": 15000}},
        headers=auth("artist"),
    )
    assert res.status_code == 400
    body = res.json()["detail"]
    assert body["message"] == f"Not your turn. Awaiting user {ids['organizer']}"
    assert body["field_errors"] == {"turn": body["message"]}

    res = client.post(
        url,
        json={
            "action_key": "PROPOSE_CHANGE",
            "inputs": {"offerAmount": 15000},
            "client_msg_id": "abc-1",
        },
        headers=auth("organizer"),
    )
    assert res.status_code == 200
    msg = res.json()
    assert msg["message_type"] == "action"
    assert msg["action_key"] == "PROPOSE_CHANGE"
    assert msg["sender_id"] == ids["organizer"]
    assert msg["round"] == 0
    assert msg["payload"]["offerAmount"] == 15000
    assert msg["client_msg_id"] == "abc-1"

    replay = client.post(
        url,
        json={
            "action_key": "PROPOSE_CHANGE",
            "inputs": {"offerAmount": 15000},
            "client_msg_id": "abc-1",
        },
        headers=auth("organizer"),
    )
    assert replay.status_code == 200
    assert replay.json()["id"] == msg["id"]

    res = client.post(url, json={"action_key": "ACCEPT"}, headers=auth("artist"))
    assert res.status_code == 200

    res = client.post(url, json={"action_key": "DECLINE"}, headers=auth("organizer"))
    assert res.status_code == 400
    assert res.json()["detail"]["message"] == "Workflow is locked"

    db = Session()
    booking = db.get(models.Booking, ids["booking"])
    assert booking.status == BookingStatus.CONTRACTING
    assert booking.offer_amount == Decimal("15000")
    db.close()

    res = client.get(f"/api/v1/conversations/{convo_id}/messages", headers=auth("artist"))
    assert res.status_code == 200
    messages = res.json()
    assert [m["message_type"] for m in messages] == ["system", "action", "action", "system"]
    assert messages[-1]["body"] == "Negotiation accepted."

    res = client.get("/api/v1/conversations", headers=auth("organizer"))
    assert res.status_code == 200
    [item] = res.json()
    assert item["id"] == convo_id
    assert item["preview_label"] == "Negotiation accepted."


def test_unknown_action_key_is_rejected():
    Session = setup_app()
    ids = seed(Session)
    client = TestClient(app)
    convo_id = open_negotiation(client, ids["booking"]).json()["id"]
    res = client.post(
        f"/api/v1/conversations/{convo_id}/actions",
        json={"action_key": "ASK_PRESET_QUESTION"},
        headers=auth("organizer"),
    )
    assert res.status_code == 400
    assert res.json()["detail"]["message"] == "Invalid action"


def test_non_numeric_offer_is_a_validation_error():
    Session = setup_app()
    ids = seed(Session)
    client = TestClient(app)
    convo_id = open_negotiation(client, ids["booking"]).json()["id"]
    res = client.post(
        f"/api/v1/conversations/{convo_id}/actions",
        json={"action_key": "PROPOSE_CHANGE", "inputs": {"offerAmount": "lots"}},
        headers=auth("organizer"),
    )
    assert res.status_code == 422
    assert res.json()["detail"]["message"] == "Validation error"


def test_free_text_rejected_in_negotiation():
    Session = setup_app()
    ids = seed(Session)
    client = TestClient(app)
    convo_id = open_negotiation(client, ids["booking"]).json()["id"]
    res = client.post(
        f"/api/v1/conversations/{convo_id}/messages",
        json={"body": "Hello?"},
        headers=auth("artist"),
    )
    assert res.status_code == 400
    assert res.json()["detail"]["message"] == "Free text not allowed in this mode. Use actions."


def test_direct_conversation_accepts_text():
    Session = setup_app()
    ids = seed(Session)
    client = TestClient(app)
    res = client.post(
        f"/api/v1/entities/booking/{ids['booking']}/conversation/direct/open",
        headers=auth("organizer"),
    )
    assert res.status_code == 200
    convo_id = res.json()["id"]

    res = client.post(
        f"/api/v1/conversations/{convo_id}/messages",
        json={"body": "Sound check at five"},
        headers=auth("organizer"),
    )
    assert res.status_code == 201
    assert res.json()["body"] == "Sound check at five"

    res = client.post(
        f"/api/v1/conversations/{convo_id}/messages",
        json={"body": "   "},
        headers=auth("organizer"),
    )
    assert res.status_code == 422


def test_non_finite_offer_is_rejected_and_offer_kept():
    Session = setup_app()
    ids = seed(Session)
    client = TestClient(app)
    convo_id = open_negotiation(client, ids["booking"]).json()["id"]
    for literal in ("NaN", "Infinity", "-Infinity"):
        res = client.post(
            f"/api/v1/conversations/{convo_id}/actions",
            content='{"action_key": "PROPOSE_CHANGE", "inputs": {"offerAmount": %s}}' % literal,
            headers={**auth("organizer"), "Content-Type": "application/json"},
        )
        assert res.status_code == 422

    db = Session()
    booking = db.get(models.Booking, ids["booking"])
    assert booking.offer_amount == Decimal("12000")
    assert db.get(models.ConversationWorkflowInstance, convo_id).round == 0
    db.close()
