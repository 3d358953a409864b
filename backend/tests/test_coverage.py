"""
Tests for per-song coverage gaps.
"""

import pytest
from httpx import AsyncClient

from rehearsal.core.security import Identity
from rehearsal.services import commitment_service, song_service
from rehearsal.services.coverage_service import SongRef, compute_coverage, compute_gaps, is_fully_staffed


def test_song_without_requirements_never_has_a_gap():
    jam = SongRef(position=0, title="Free Jam")
    for pledged in ([], [{1}], [{1, 2}, {3}]):
        assert compute_gaps([jam], {}, pledged) == {jam: frozenset()}
        assert compute_gaps([jam], {"Free Jam": set()}, pledged) == {jam: frozenset()}


def test_gap_is_required_minus_union_of_pledges():
    song = SongRef(position=0, title="Seven Nation Army")
    requirements = {"Seven Nation Army": {1, 2, 3}}

    gaps = compute_gaps([song], requirements, [{1}, {3, 9}])

    assert gaps == {song: frozenset({2})}
    assert not is_fully_staffed(gaps)
    assert is_fully_staffed(compute_gaps([song], requirements, [{1, 2}, {3}]))


def test_session_without_songs_is_fully_staffed():
    assert is_fully_staffed(compute_gaps([], {}, []))


@pytest.mark.asyncio
async def test_seven_nation_army_scenario(db_session, session_id, members, capabilities):
    """Gap shrinks from {bass, drums} to {drums} to nothing as members RSVP."""
    bass, drums = capabilities["bass"], capabilities["drums"]

    report = await compute_coverage(db_session, session_id)
    assert {e.song.title: e.gap for e in report.songs} == {
        "Seven Nation Army": {bass, drums},
        "Free Jam": frozenset(),
    }
    assert not report.fully_staffed

    await commitment_service.commit(db_session, Identity(members["alice"]), session_id, members["alice"], [bass])
    report = await compute_coverage(db_session, session_id)
    assert report.gaps[SongRef(0, "Seven Nation Army", "https://example.com/sna")] == {drums}

    await commitment_service.commit(db_session, Identity(members["dave"]), session_id, members["dave"], [drums])
    report = await compute_coverage(db_session, session_id)
    assert report.gaps[SongRef(0, "Seven Nation Army", "https://example.com/sna")] == frozenset()
    assert report.fully_staffed


@pytest.mark.asyncio
async def test_coverage_reflects_cancel_immediately(db_session, session_id, members, capabilities):
    bass = capabilities["bass"]
    alice = Identity(members["alice"])
    await commitment_service.commit(db_session, alice, session_id, members["alice"], [bass])
    assert bass in (await compute_coverage(db_session, session_id)).covered

    await commitment_service.cancel(db_session, alice, session_id, members["alice"])
    report = await compute_coverage(db_session, session_id)
    assert bass not in report.covered
    assert bass in report.songs[0].gap


@pytest.mark.asyncio
async def test_capability_with_no_holders_still_shows_as_gap(db_session, admin, session_id, songs, capabilities):
    """Nobody has guitar, yet the requirement is reported rather than dropped."""
    await song_service.set_requirements(db_session, admin, songs["jam"], [capabilities["guitar"]])

    report = await compute_coverage(db_session, session_id)

    assert report.songs[1].song.title == "Free Jam"
    assert report.songs[1].gap == {capabilities["guitar"]}


@pytest.mark.asyncio
async def test_coverage_endpoint(client: AsyncClient, alice_headers, session_id, capabilities):
    await client.post(
        f"/api/v1/sessions/{session_id}/commitments",
        json={"capability_ids": [capabilities["bass"]]},
        headers=alice_headers,
    )

    response = await client.get(f"/api/v1/sessions/{session_id}/coverage", headers=alice_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["fully_staffed"] is False
    assert [c["name"] for c in data["covered"]] == ["bass"]

    seven, jam = data["songs"]
    assert seven["song_name"] == "Seven Nation Army"
    assert [c["name"] for c in seven["required"]] == ["bass", "drums"]
    assert [c["name"] for c in seven["gap"]] == ["drums"]
    assert jam["required"] == [] and jam["gap"] == []


@pytest.mark.asyncio
async def test_coverage_unknown_session(client: AsyncClient, alice_headers):
    response = await client.get("/api/v1/sessions/99999/coverage", headers=alice_headers)
    assert response.status_code == 404
