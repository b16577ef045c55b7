from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timedelta, timezone

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from bethouse.db import get_db
from bethouse.domain.enums import AccountRole
from bethouse.main import app
from bethouse.models import Base
from bethouse.services.badges import award_badge
from bethouse.services.hub import NotificationHub
from bethouse.services.notifications import deliver_pending
from bethouse.services.repository import load_account
from factories import make_account


@pytest.fixture
def db_factory() -> Iterator[sessionmaker]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    def override_get_db() -> Iterator[Session]:
        db = factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield factory
    app.dependency_overrides.clear()
    engine.dispose()


@pytest.fixture
def client(db_factory) -> TestClient:
    return TestClient(app)


@pytest.fixture
def accounts(db_factory) -> dict[str, int]:
    with db_factory() as session:
        user = make_account(session, "player@example.com", balance="100.00")
        admin = make_account(session, "admin@example.com", balance="0", role=AccountRole.ADMIN)
        return {"user": user.id, "admin": admin.id}


def _as(account_id: int) -> dict[str, str]:
    return {"X-Account-Id": str(account_id)}


def _create_open_event(client: TestClient, admin_id: int, odds=("2.00", "3.50")) -> dict:
    created = client.post(
        "/api/admin/events",
        headers=_as(admin_id),
        json={
            "title": "Cup final",
            "pricingModel": "FIXED_ODDS",
            "commenceTime": (datetime.now(timezone.utc) + timedelta(days=1)).isoformat(),
            "options": [{"name": "Home", "initialOdd": odds[0]}, {"name": "Away", "initialOdd": odds[1]}],
        },
    )
    assert created.status_code == 201
    event_id = created.json()["id"]
    opened = client.patch(f"/api/admin/events/{event_id}/status", headers=_as(admin_id), json={"status": "OPEN"})
    assert opened.status_code == 200
    return opened.json()


def test_health(client) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.headers["X-Request-ID"]


def test_wallet_requires_account_header(client) -> None:
    assert client.get("/api/wallet").status_code == 401


def test_full_betting_flow(client, accounts) -> None:
    user, admin = accounts["user"], accounts["admin"]
    event = _create_open_event(client, admin)
    assert [item["id"] for item in client.get("/api/events").json()] == [event["id"]]

    placed = client.post(
        "/api/bets",
        headers=_as(user),
        json={"selections": [{"eventId": event["id"], "optionId": event["options"][0]["id"]}], "amount": 50},
    )
    assert placed.status_code == 201
    body = placed.json()
    assert body["type"] == "SINGLE"
    assert body["potentialPayout"] == 100.0
    assert body["legs"][0]["eventTitle"] == "Cup final"
    assert body["legs"][0]["chosenOptionName"] == "Home"
    assert client.get("/api/wallet", headers=_as(user)).json()["balance"] == 50.0

    client.patch(f"/api/admin/events/{event['id']}/status", headers=_as(admin), json={"status": "LOCKED"})
    settled = client.post(
        f"/api/admin/events/{event['id']}/settle",
        headers=_as(admin),
        json={"winnerOptionId": event["options"][0]["id"]},
    )
    assert settled.status_code == 200
    assert settled.json()["event"]["status"] == "SETTLED"
    assert client.get("/api/wallet", headers=_as(user)).json()["balance"] == 150.0

    again = client.post(
        f"/api/admin/events/{event['id']}/settle",
        headers=_as(admin),
        json={"winnerOptionId": event["options"][0]["id"]},
    )
    assert again.status_code == 409
    assert again.json() == {
        "code": "ALREADY_SETTLED",
        "message": f"Event {event['id']} was already settled.",
        "retryable": False,
    }

    bets = client.get("/api/bets", headers=_as(user)).json()
    assert [bet["status"] for bet in bets] == ["WON"]
    history = client.get("/api/wallet/transactions?page=0&size=10", headers=_as(user)).json()
    assert [tx["origin"] for tx in history["content"]] == ["BET_WIN", "BET_ENTRY", "MANUAL_ADJUSTMENT"]
    assert history["totalElements"] == 3


def test_single_leg_body_and_error_shape(client, accounts) -> None:
    event = _create_open_event(client, accounts["admin"])

    response = client.post(
        "/api/bets",
        headers=_as(accounts["user"]),
        json={"eventId": event["id"], "optionId": event["options"][1]["id"], "amount": "500.00"},
    )
    assert response.status_code == 409
    assert response.json()["code"] == "INSUFFICIENT_FUNDS"

    admin_bet = client.post(
        "/api/bets",
        headers=_as(accounts["admin"]),
        json={"eventId": event["id"], "optionId": event["options"][1]["id"], "amount": "5.00"},
    )
    assert admin_bet.status_code == 403


def test_admin_routes_are_guarded(client, accounts) -> None:
    response = client.get("/api/admin/dashboard/statistics", headers=_as(accounts["user"]))
    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN_ROLE"

    stats = client.get("/api/admin/dashboard/statistics", headers=_as(accounts["admin"]))
    assert stats.status_code == 200
    assert stats.json()["totalUsers"] == 1


def test_daily_bonus_and_money_requests(client, accounts) -> None:
    user, admin = accounts["user"], accounts["admin"]

    bonus = client.post("/api/wallet/daily-bonus", headers=_as(user))
    assert bonus.status_code == 200
    assert bonus.json()["balance"] == 200.0
    assert client.post("/api/wallet/daily-bonus", headers=_as(user)).json()["code"] == "ALREADY_CLAIMED_TODAY"

    created = client.post("/api/money-requests", headers=_as(user), json={"amount": 25, "reason": "top up"})
    assert created.status_code == 201
    request_id = created.json()["id"]
    pending = client.get("/api/admin/money-requests", headers=_as(admin)).json()
    assert [item["id"] for item in pending] == [request_id]

    approved = client.post(f"/api/admin/money-requests/{request_id}/approve", headers=_as(admin))
    assert approved.json()["status"] == "APPROVED"
    assert client.get("/api/wallet", headers=_as(user)).json()["balance"] == 225.0
    assert [item["status"] for item in client.get("/api/money-requests", headers=_as(user)).json()] == ["APPROVED"]


def test_leaderboard_and_account_creation(client, accounts) -> None:
    created = client.post(
        "/api/admin/accounts",
        headers=_as(accounts["admin"]),
        json={"email": "rich@example.com", "name": "Rich", "initialBalance": "900.00"},
    )
    assert created.status_code == 201
    assert created.json()["walletBalance"] == 900.0

    ranking = client.get("/api/leaderboard/wealth").json()
    assert [entry["name"] for entry in ranking] == ["Rich", "Player"]
    assert client.get("/api/leaderboard/luck").status_code == 422


def test_missing_event_is_404(client) -> None:
    response = client.get("/api/events/12345")
    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


def test_websocket_receives_event_updates(client, accounts, db_factory, monkeypatch) -> None:
    hub = NotificationHub()
    monkeypatch.setattr("bethouse.api.ws.get_hub", lambda: hub)

    with client.websocket_connect(f"/ws?account_id={accounts['user']}") as websocket:
        event = _create_open_event(client, accounts["admin"])
        with db_factory() as session:
            deliver_pending(session, hub)
        message = websocket.receive_json()

    assert message["topic"] == "/topic/events"
    assert message["body"]["id"] == event["id"]


def test_websocket_rejects_unknown_account(client, db_factory) -> None:
    with pytest.raises(WebSocketDisconnect) as caught:
        with client.websocket_connect("/ws?account_id=999"):
            pass
    assert caught.value.code == 4404


def test_badge_catalog_and_my_badges(client, accounts, db_factory) -> None:
    catalog = client.get("/api/badges/catalog")
    assert catalog.status_code == 200
    entries = {entry["code"]: entry for entry in catalog.json()}
    assert len(entries) == 13
    assert entries["PRIMO_RICO"] == {
        "code": "PRIMO_RICO",
        "title": "Primo Rico",
        "description": entries["PRIMO_RICO"]["description"],
        "category": "FINANCE",
        "rewardAmount": 500.0,
    }

    assert client.get("/api/badges/my").status_code == 401
    assert client.get("/api/badges/my", headers=_as(accounts["user"])).json() == []

    with db_factory() as session:
        account = load_account(session, accounts["user"], for_update=True)
        award_badge(session, account, "JULIUS")
        session.commit()

    mine = client.get("/api/badges/my", headers=_as(accounts["user"])).json()
    assert [item["code"] for item in mine] == ["JULIUS"]
    assert mine[0]["earnedAt"]
    assert client.get("/api/wallet", headers=_as(accounts["user"])).json()["balance"] == 100.5
