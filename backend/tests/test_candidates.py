"""
Tests for candidate matching.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import update

from rehearsal.core.exceptions import NotFoundError
from rehearsal.core.security import Identity
from rehearsal.models.user import User
from rehearsal.services import commitment_service
from rehearsal.services.candidate_service import find_candidates


@pytest.mark.asyncio
async def test_committed_holder_is_excluded(db_session, session_id, members, capabilities):
    """Three bass players, Alice already RSVP'd: Bob and Carol remain."""
    bass = capabilities["bass"]
    await commitment_service.commit(db_session, Identity(members["alice"]), session_id, members["alice"], [bass])

    candidates = await find_candidates(db_session, session_id, bass)

    assert [u.id for u in candidates] == [members["bob"], members["carol"]]


@pytest.mark.asyncio
async def test_committed_member_without_that_capability_is_excluded(db_session, session_id, members, capabilities):
    """Bob holds bass but RSVP'd for drums only; he is still not a bass candidate."""
    await commitment_service.commit(
        db_session, Identity(members["bob"]), session_id, members["bob"], [capabilities["drums"]]
    )

    candidates = await find_candidates(db_session, session_id, capabilities["bass"])

    assert members["bob"] not in {u.id for u in candidates}
    assert [u.name for u in candidates] == ["Alice", "Carol"]


@pytest.mark.asyncio
async def test_no_holders_returns_empty(db_session, session_id, capabilities, members):
    assert await find_candidates(db_session, session_id, capabilities["guitar"]) == []


@pytest.mark.asyncio
async def test_inactive_members_are_not_candidates(db_session, session_id, capabilities, members):
    await db_session.execute(update(User).where(User.id == members["carol"]).values(is_active=False))

    candidates = await find_candidates(db_session, session_id, capabilities["bass"])

    assert [u.name for u in candidates] == ["Alice", "Bob"]


@pytest.mark.asyncio
async def test_unknown_capability_raises(db_session, session_id, members):
    with pytest.raises(NotFoundError):
        await find_candidates(db_session, session_id, 99999)


@pytest.mark.asyncio
async def test_candidates_endpoint(client: AsyncClient, alice_headers, session_id, members, capabilities):
    response = await client.get(
        f"/api/v1/sessions/{session_id}/candidates",
        params={"capability_id": capabilities["drums"]},
        headers=alice_headers,
    )
    assert response.status_code == 200
    assert [c["name"] for c in response.json()] == ["Bob", "Dave"]
    assert response.json()[0]["phone"] == "555-010-0002"


@pytest.mark.asyncio
async def test_candidates_use_supplied_lookups(db_session, session_id, capabilities):
    """Holder and RSVP sources can be swapped; committed holders are still filtered out."""
    holders = [User(id=7, name="Erin"), User(id=8, name="Frank"), User(id=9, name="Gus")]

    async def holder_lookup(db, capability_id):
        assert capability_id == capabilities["guitar"]
        return holders

    async def committed_lookup(db, sid):
        assert sid == session_id
        return {8}

    candidates = await find_candidates(
        db_session,
        session_id,
        capabilities["guitar"],
        holder_lookup=holder_lookup,
        committed_lookup=committed_lookup,
    )
    assert [u.name for u in candidates] == ["Erin", "Gus"]
