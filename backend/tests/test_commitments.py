"""
Tests for the commitment ledger: RSVP upsert, cancel and listing.
"""

import asyncio
from datetime import date, time

import pytest
from httpx import AsyncClient
from sqlalchemy import event, func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from rehearsal.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError, integrity_error_handler
from rehearsal.core.security import Identity
from rehearsal.db.base import Base
from rehearsal.models import Capability, RehearsalSession, User
from rehearsal.models.capability import commitment_capabilities, user_capabilities
from rehearsal.models.session import Commitment
from rehearsal.services import commitment_service


async def _ledger_rows(db_session) -> tuple[int, int]:
    commitments = await db_session.scalar(select(func.count()).select_from(Commitment))
    links = await db_session.scalar(select(func.count()).select_from(commitment_capabilities))
    return commitments, links


@pytest.mark.asyncio
async def test_commit(client: AsyncClient, alice_headers, session_id, members, capabilities):
    """Member RSVPs covering a capability they hold."""
    response = await client.post(
        f"/api/v1/sessions/{session_id}/commitments",
        json={"capability_ids": [capabilities["bass"]]},
        headers=alice_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["session_id"] == session_id
    assert data["user_id"] == members["alice"]
    assert data["user"]["name"] == "Alice"
    assert [c["name"] for c in data["capabilities"]] == ["bass"]


@pytest.mark.asyncio
async def test_commit_unauthenticated(client: AsyncClient, session_id, capabilities):
    response = await client.post(
        f"/api/v1/sessions/{session_id}/commitments",
        json={"capability_ids": [capabilities["bass"]]},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_commit_empty_capabilities(client: AsyncClient, alice_headers, session_id):
    """An RSVP must cover at least one capability."""
    response = await client.post(
        f"/api/v1/sessions/{session_id}/commitments",
        json={"capability_ids": []},
        headers=alice_headers,
    )
    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


@pytest.mark.asyncio
async def test_commit_capability_not_owned(client: AsyncClient, alice_headers, session_id, capabilities):
    """Alice plays bass only; pledging drums names the offending capability."""
    response = await client.post(
        f"/api/v1/sessions/{session_id}/commitments",
        json={"capability_ids": [capabilities["bass"], capabilities["drums"]]},
        headers=alice_headers,
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "You don't have that capability: drums"

    listing = await client.get(f"/api/v1/sessions/{session_id}/commitments", headers=alice_headers)
    assert listing.json() == []


@pytest.mark.asyncio
async def test_commit_unknown_session(client: AsyncClient, alice_headers, members, capabilities):
    response = await client.post(
        "/api/v1/sessions/99999/commitments",
        json={"capability_ids": [capabilities["bass"]]},
        headers=alice_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_commit_for_another_member_requires_admin(
    client: AsyncClient, alice_headers, admin_headers, session_id, members, capabilities
):
    payload = {"user_id": members["bob"], "capability_ids": [capabilities["drums"]]}

    response = await client.post(f"/api/v1/sessions/{session_id}/commitments", json=payload, headers=alice_headers)
    assert response.status_code == 403

    response = await client.post(f"/api/v1/sessions/{session_id}/commitments", json=payload, headers=admin_headers)
    assert response.status_code == 201
    assert response.json()["user_id"] == members["bob"]


@pytest.mark.asyncio
async def test_recommit_replaces_capabilities(client: AsyncClient, auth_headers, session_id, members, capabilities):
    """A second RSVP updates the same commitment instead of adding one."""
    headers = auth_headers(members["bob"])
    url = f"/api/v1/sessions/{session_id}/commitments"

    first = await client.post(url, json={"capability_ids": [capabilities["bass"]]}, headers=headers)
    second = await client.post(url, json={"capability_ids": [capabilities["drums"]]}, headers=headers)
    assert first.status_code == 201
    assert second.status_code == 201
    assert second.json()["id"] == first.json()["id"]
    assert [c["name"] for c in second.json()["capabilities"]] == ["drums"]

    listing = (await client.get(url, headers=headers)).json()
    assert len(listing) == 1
    assert [c["name"] for c in listing[0]["capabilities"]] == ["drums"]


@pytest.mark.asyncio
async def test_commit_twice_is_idempotent(db_session, session_id, members, capabilities):
    bob = Identity(user_id=members["bob"])
    wanted = [capabilities["bass"], capabilities["drums"]]

    await commitment_service.commit(db_session, bob, session_id, members["bob"], wanted)
    await commitment_service.commit(db_session, bob, session_id, members["bob"], wanted)

    commitments = await commitment_service.list_commitments(db_session, session_id)
    assert len(commitments) == 1
    assert {c.id for c in commitments[0].capabilities} == set(wanted)
    assert await _ledger_rows(db_session) == (1, 2)


@pytest.mark.asyncio
async def test_listing_has_one_entry_per_member_in_rsvp_order(db_session, admin, session_id, members, capabilities):
    bass, drums = capabilities["bass"], capabilities["drums"]
    await commitment_service.commit(db_session, admin, session_id, members["dave"], [drums])
    await commitment_service.commit(db_session, admin, session_id, members["alice"], [bass])
    await commitment_service.commit(db_session, admin, session_id, members["dave"], [drums])
    await commitment_service.commit(db_session, admin, session_id, members["bob"], [bass, drums])

    commitments = await commitment_service.list_commitments(db_session, session_id)
    user_ids = [c.user_id for c in commitments]
    assert user_ids == [members["dave"], members["alice"], members["bob"]]
    assert len(set(user_ids)) == len(user_ids)


@pytest.mark.asyncio
async def test_commit_then_cancel_restores_ledger(db_session, session_id, members, capabilities):
    alice = Identity(user_id=members["alice"])
    await commitment_service.commit(db_session, alice, session_id, members["alice"], [capabilities["bass"]])
    before_cancel = await _ledger_rows(db_session)
    assert before_cancel == (1, 1)

    await commitment_service.cancel(db_session, alice, session_id, members["alice"])

    assert await _ledger_rows(db_session) == (0, 0)
    assert await commitment_service.list_commitments(db_session, session_id) == []


@pytest.mark.asyncio
async def test_rejected_commit_leaves_ledger_untouched(db_session, session_id, members, capabilities):
    alice = Identity(user_id=members["alice"])
    with pytest.raises(ValidationError):
        await commitment_service.commit(db_session, alice, session_id, members["alice"], [])
    with pytest.raises(ValidationError):
        await commitment_service.commit(db_session, alice, session_id, members["alice"], [capabilities["vocals"]])
    with pytest.raises(PermissionDeniedError):
        await commitment_service.commit(db_session, alice, session_id, members["bob"], [capabilities["bass"]])

    assert await _ledger_rows(db_session) == (0, 0)


@pytest.mark.asyncio
async def test_cancel(client: AsyncClient, alice_headers, session_id, members, capabilities):
    url = f"/api/v1/sessions/{session_id}/commitments"
    await client.post(url, json={"capability_ids": [capabilities["bass"]]}, headers=alice_headers)

    response = await client.delete(url, headers=alice_headers)
    assert response.status_code == 200
    assert response.json()["user_id"] == members["alice"]

    listing = await client.get(url, headers=alice_headers)
    assert listing.json() == []


@pytest.mark.asyncio
async def test_cancel_without_commitment(client: AsyncClient, alice_headers, session_id):
    """Cancelling a missing RSVP returns 404."""
    response = await client.delete(f"/api/v1/sessions/{session_id}/commitments", headers=alice_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_cancel_missing_commitment_raises(db_session, session_id, members):
    with pytest.raises(NotFoundError):
        await commitment_service.cancel(db_session, Identity(user_id=members["dave"]), session_id, members["dave"])


@pytest.mark.asyncio
async def test_commit_unknown_capability(client: AsyncClient, alice_headers, session_id, capabilities):
    response = await client.post(
        f"/api/v1/sessions/{session_id}/commitments",
        json={"capability_ids": [capabilities["bass"], 999]},
        headers=alice_headers,
    )
    assert response.status_code == 404
    assert response.json()["details"] == {"missing_capability_ids": [999]}


@pytest.mark.asyncio
async def test_unique_pair_rejects_duplicate_row(db_session, session_id, members):
    """The (session, member) constraint holds even when the upsert is bypassed."""
    db_session.add(Commitment(session_id=session_id, user_id=members["alice"]))
    await db_session.flush()

    db_session.add(Commitment(session_id=session_id, user_id=members["alice"]))
    with pytest.raises(IntegrityError) as exc_info:
        await db_session.flush()
    await db_session.rollback()

    response = await integrity_error_handler(None, exc_info.value)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_racing_rsvps_leave_one_row(tmp_path):
    """
    Two RSVPs for the same member race on separate connections.
    Exactly one commitment remains, holding one writer's capabilities, never both.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'race.db'}")

    # Take the write lock when a transaction starts so the second writer waits
    # for the first commit instead of failing with "database is locked".
    @event.listens_for(engine.sync_engine, "connect")
    def _manual_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as setup:
        bass, drums = Capability(name="bass"), Capability(name="drums")
        bob = User(name="Bob", email="bob@band.test")
        setup.add_all([bass, drums, bob])
        await setup.flush()
        session = RehearsalSession(date=date(2026, 11, 5), start_time=time(19, 30), end_time=time(0, 0))
        setup.add(session)
        await setup.flush()
        await setup.execute(
            insert(user_capabilities),
            [{"user_id": bob.id, "capability_id": bass.id}, {"user_id": bob.id, "capability_id": drums.id}],
        )
        await setup.commit()
        ids = {"bob": bob.id, "bass": bass.id, "drums": drums.id, "session": session.id}

    async def rsvp(capability_id: int) -> None:
        async with factory() as db:
            await commitment_service.commit(
                db, Identity(user_id=ids["bob"]), ids["session"], ids["bob"], [capability_id]
            )
            await db.commit()

    try:
        await asyncio.gather(rsvp(ids["bass"]), rsvp(ids["drums"]))

        async with factory() as db:
            rows = (await db.execute(select(Commitment))).scalars().all()
            pledged = await commitment_service.covered_capabilities(db, ids["session"])
        assert len(rows) == 1
        assert pledged in ([{ids["bass"]}], [{ids["drums"]}])
    finally:
        await engine.dispose()
