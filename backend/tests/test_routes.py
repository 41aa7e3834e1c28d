from __future__ import annotations

import time

import pytest
from fastapi import FastAPI
from fastapi.exception_handlers import RequestValidationError
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

from fuelops.api.dependencies import get_db_session
from fuelops.api.error_handlers import domain_exception_handler, validation_exception_handler
from fuelops.api.routes.alerts import router as alerts_router
from fuelops.api.routes.auth import router as auth_router
from fuelops.api.routes.deviations import router as deviations_router
from fuelops.api.routes.dispersions import router as dispersions_router
from fuelops.api.routes.reports import router as reports_router
from fuelops.api.routes.sites import router as sites_router
from fuelops.api.routes.tickets import router as tickets_router
from fuelops.api.routes.uplifts import router as uplifts_router
from fuelops.api.routes.users import router as users_router
from fuelops.core.database import get_db
from fuelops.core.exceptions import FuelOpsError
from fuelops.core.security import get_current_user
from fuelops.models.tables import Base, UserProfile


@pytest.fixture
def db_file(tmp_path, factories):
    """File-backed database seeded with one site, shared by every request."""
    path = tmp_path / "routes.db"
    sync_engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(sync_engine)
    with Session(sync_engine) as session:
        session.add_all(factories.site_rows())
        session.commit()
    yield path
    sync_engine.dispose()


@pytest.fixture
def make_client(db_file):
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_file}", poolclass=NullPool)
    SessionLocal = async_sessionmaker(engine, expire_on_commit=False)

    async def _session():
        async with SessionLocal() as session:
            yield session

    def _mk(user: UserProfile | None = None) -> TestClient:
        app = FastAPI()
        routers = (
            auth_router,
            users_router,
            sites_router,
            tickets_router,
            deviations_router,
            dispersions_router,
            uplifts_router,
            reports_router,
            alerts_router,
        )
        for router in routers:
            app.include_router(router)
        app.add_exception_handler(FuelOpsError, domain_exception_handler)
        app.add_exception_handler(RequestValidationError, validation_exception_handler)
        app.dependency_overrides[get_db_session] = _session
        app.dependency_overrides[get_db] = _session
        if user is not None:
            app.dependency_overrides[get_current_user] = lambda: user
        return TestClient(app)

    return _mk


def _user(role: str, approved: bool = True) -> UserProfile:
    return UserProfile(id=f"{role}-id", email=f"{role}@example.com", role=role, approved=approved)


def _seed_tickets(db_file, factories, *statuses) -> list:
    engine = create_engine(f"sqlite:///{db_file}")
    with Session(engine) as session:
        rows = [factories.pending_ticket("SITE-1", ticket_status=s) for s in statuses]
        session.add_all(rows)
        session.commit()
        ids = [r.id for r in rows]
    engine.dispose()
    return ids


def test_coordinator_raises_ticket(make_client):
    client = make_client(_user("coordinator"))
    resp = client.post(
        "/tickets",
        params={"today": "2025-06-10"},
        json={"site_id": "SITE-1", "fuel": 300, "site_status": "prime"},
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["ticket_status"] == "Pending"
    assert body["requested_by"] == "coordinator@example.com"
    assert body["days_since_last_fueling"] == 9

    listed = client.get("/tickets", params={"status": "Pending"})
    assert [t["id"] for t in listed.json()] == [body["id"]]


def test_ticket_with_non_positive_fuel_is_rejected(make_client):
    client = make_client(_user("coordinator"))
    resp = client.post("/tickets", json={"site_id": "SITE-1", "fuel": 0, "site_status": "prime"})
    assert resp.status_code == 422
    assert resp.json()["error"] == "Validation error"


def test_role_gates(make_client):
    fueler = make_client(_user("fueler"))
    resp = fueler.post("/tickets/review", json={"ids": [1], "action": "Approved"})
    assert resp.status_code == 403

    waiting = make_client(_user("coordinator", approved=False))
    resp = waiting.get("/tickets")
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Account awaiting approval"

    admin = make_client(_user("admin"))
    for path in ("/tickets", "/tickets/stats", "/deviations", "/reports/fuel-summary", "/users"):
        assert admin.get(path).status_code == 200, path


def test_review_updates_only_pending(make_client, db_file, factories):
    pending_id, closed_id = _seed_tickets(db_file, factories, "Pending", "Closed")
    client = make_client(_user("rm"))
    resp = client.post(
        "/tickets/review",
        json={"ids": [pending_id, closed_id], "action": "Approved", "approved_fuel_quantity": 250},
    )
    assert resp.status_code == 200
    assert resp.json() == {"updated": [pending_id], "skipped": [closed_id]}

    viewer = make_client(_user("gtl"))
    ticket = viewer.get(f"/tickets/{pending_id}").json()
    assert ticket["ticket_status"] == "Approved"
    assert ticket["approved_fuel_quantity"] == 250
    assert ticket["reviewed_by"] == "rm@example.com"


def test_domain_errors_use_error_envelope(make_client):
    client = make_client(_user("security"))
    resp = client.get("/deviations/NOPE")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Deviation not found", "details": {"site_id": "NOPE"}}


def test_fueler_submits_dispersion(make_client, db_file, factories):
    _seed_tickets(db_file, factories, "Approved")
    client = make_client(_user("fueler"))
    resp = client.post(
        "/dispersions",
        json={"site_id": "SITE-1", "fueling_date": "05-Jun-25", "before_fuel": 900, "fuel_filled": 300, "fueler_name": "Ali"},
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["deviation"]["status"] == "Yes"
    assert len(body["closed_ticket_ids"]) == 1

    history = client.get("/dispersions/history").json()
    assert [d["site_id"] for d in history] == ["SITE-1"]


def _auth_header(sub: str, email: str) -> dict:
    token = jwt.encode(
        {"sub": sub, "email": email, "aud": "authenticated", "exp": int(time.time()) + 600},
        "test-secret",
        algorithm="HS256",
    )
    return {"Authorization": f"Bearer {token}"}


def test_registration_and_me(make_client):
    client = make_client()
    fueler = _auth_header("sub-fueler", "f@example.com")
    resp = client.post("/auth/profile", headers=fueler, json={"email": "f@example.com", "role": "fueler"})
    assert resp.status_code == 201
    assert resp.json()["approved"] is False

    me = client.get("/auth/me", headers=fueler)
    assert me.status_code == 200
    assert me.json()["id"] == "sub-fueler"
    # Not approved yet, so gated routes refuse
    assert client.get("/dispersions/history", headers=fueler).status_code == 403

    again = client.post("/auth/profile", headers=fueler, json={"email": "f@example.com", "role": "fueler"})
    assert again.status_code == 409

    coord = _auth_header("sub-coord", "c@example.com")
    resp = client.post("/auth/profile", headers=coord, json={"email": "c@example.com", "role": "coordinator"})
    assert resp.json()["approved"] is True

    assert client.get("/auth/me").status_code == 401
    unknown = _auth_header("sub-ghost", "ghost@example.com")
    assert client.get("/auth/me", headers=unknown).status_code == 403


def test_first_admin_only(make_client):
    client = make_client()
    first = client.post(
        "/auth/profile", headers=_auth_header("a1", "a1@example.com"), json={"email": "a1@example.com", "role": "admin"}
    )
    assert first.status_code == 201
    second = client.post(
        "/auth/profile", headers=_auth_header("a2", "a2@example.com"), json={"email": "a2@example.com", "role": "admin"}
    )
    assert second.status_code == 403
    assert "error" in second.json()


@pytest.mark.parametrize(
    "path,allowed,denied",
    [
        ("/sites", ["fueler", "security", "cto"], []),
        ("/sites/fueling-teams", ["fueler", "coordinator"], ["rm", "security"]),
        ("/sites/SITE-1/snapshot", ["coordinator", "rm", "gtl", "cto"], ["fueler", "security"]),
        ("/sites/SITE-1/prefill", ["fueler", "coordinator"], ["rm", "security"]),
        ("/sites/locations", ["rm", "gtl", "cto"], ["fueler", "coordinator", "security"]),
        ("/sites/SITE-1/alarm-averages", ["rm", "gtl", "cto"], ["fueler", "coordinator"]),
        ("/uplifts", ["coordinator", "rm", "gtl", "cto"], ["fueler", "security"]),
        ("/alerts/contacts", ["admin"], ["rm", "gtl", "security", "coordinator"]),
        ("/alerts/logs", ["security", "rm", "gtl"], ["fueler", "coordinator", "cto"]),
    ],
)
def test_read_gates_per_role(make_client, path, allowed, denied):
    for role in allowed:
        assert make_client(_user(role)).get(path).status_code == 200, (path, role)
    for role in denied:
        assert make_client(_user(role)).get(path).status_code == 403, (path, role)


def test_uplift_is_recorded_by_fuelers_only(make_client):
    body = {"team_id": "T1", "fueler_name": "Ali", "quantity": 120, "pump_name": "PSO Main"}
    resp = make_client(_user("fueler")).post("/uplifts", json=body)
    assert resp.status_code == 201, resp.text
    assert resp.json()["user_email"] == "fueler@example.com"

    assert make_client(_user("coordinator")).post("/uplifts", json=body).status_code == 403
    listed = make_client(_user("coordinator")).get("/uplifts").json()
    assert [u["quantity"] for u in listed] == [120]


def test_alert_contacts_are_admin_managed(make_client):
    admin = make_client(_user("admin"))
    resp = admin.post("/alerts/contacts", json={"role": "rm", "name": "Regional", "phone": "0092 300 1234567"})
    assert resp.status_code == 201, resp.text
    assert resp.json()["phone"] == "923001234567"

    rm = make_client(_user("rm"))
    assert rm.post("/alerts/contacts", json={"role": "rm", "name": "X", "phone": "0300"}).status_code == 403
    assert rm.delete(f"/alerts/contacts/{resp.json()['id']}").status_code == 403
    assert admin.delete(f"/alerts/contacts/{resp.json()['id']}").status_code == 200


def _post_raw(client: TestClient, path: str, raw: str):
    # Literal NaN / Infinity tokens, which json.loads accepts
    return client.post(path, content=raw, headers={"Content-Type": "application/json"})


def test_non_finite_numbers_are_rejected(make_client, db_file, factories):
    _seed_tickets(db_file, factories, "Approved")
    client = make_client(_user("fueler"))

    resp = _post_raw(
        client,
        "/deviations/preview",
        '{"site_id": "SITE-1", "fueling_date": "05-Jun-25", "before_fuel": NaN}',
    )
    assert resp.status_code == 422
    assert resp.json()["body"]["before_fuel"] is None

    resp = _post_raw(
        client,
        "/dispersions",
        '{"site_id": "SITE-1", "fueling_date": "05-Jun-25", "before_fuel": 900, "last_total_fuel": NaN}',
    )
    assert resp.status_code == 422
    resp = _post_raw(
        client,
        "/dispersions",
        '{"site_id": "SITE-1", "fueling_date": "05-Jun-25", "before_fuel": Infinity}',
    )
    assert resp.status_code == 422

    # Nothing was written and the ticket is still open
    assert client.get("/dispersions/history").json() == []
    preview = client.post(
        "/deviations/preview", json={"site_id": "SITE-1", "fueling_date": "05-Jun-25", "before_fuel": 900}
    )
    assert preview.status_code == 200
    assert preview.json()["status"] == "Yes"
