"""
Coverage engine: which capabilities each song of a session still lacks.

    covered   = union of every commitment's pledged capabilities
    gap(song) = required(song) - covered

Songs are matched to their requirements by title (see song_service).
Results are recomputed on every call and never cached; session data is
tens of songs and tens of commitments.
"""

from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from rehearsal.core.logging import get_logger
from rehearsal.core.metrics import record_coverage
from rehearsal.services import commitment_service, song_service
from rehearsal.services.session_service import get_session

logger = get_logger(__name__)

RequirementLookup = Callable[[AsyncSession, Iterable[str]], Awaitable[dict[str, set[int]]]]
PledgeLookup = Callable[[AsyncSession, int], Awaitable[list[set[int]]]]


@dataclass(frozen=True)
class SongRef:
    position: int
    title: str
    url: Optional[str] = None


@dataclass
class SongCoverage:
    song: SongRef
    required: frozenset[int]
    gap: frozenset[int]


@dataclass
class SessionCoverage:
    session_id: int
    covered: frozenset[int]
    songs: list[SongCoverage] = field(default_factory=list)

    @property
    def gaps(self) -> dict[SongRef, frozenset[int]]:
        return {entry.song: entry.gap for entry in self.songs}

    @property
    def fully_staffed(self) -> bool:
        return is_fully_staffed(self.gaps)


def union_covered(pledged: Iterable[Iterable[int]]) -> frozenset[int]:
    covered: set[int] = set()
    for capability_ids in pledged:
        covered.update(capability_ids)
    return frozenset(covered)


def compute_gaps(
    songs: Iterable[SongRef],
    requirements: Mapping[str, Iterable[int]],
    pledged: Iterable[Iterable[int]],
) -> dict[SongRef, frozenset[int]]:
    """
    Pure gap computation.

    A title missing from ``requirements`` has no requirements, so its gap is
    always empty.
    """
    covered = union_covered(pledged)
    return {
        song: frozenset(requirements.get(song.title, ())) - covered
        for song in songs
    }


def is_fully_staffed(gaps: Mapping[SongRef, frozenset[int]]) -> bool:
    return all(not gap for gap in gaps.values())


async def compute_coverage(
    db: AsyncSession,
    session_id: int,
    requirement_lookup: RequirementLookup = song_service.requirements_by_title,
    pledge_lookup: PledgeLookup = commitment_service.covered_capabilities,
) -> SessionCoverage:
    session = await get_session(db, session_id)
    songs = [SongRef(position=s.position, title=s.song_name, url=s.song_url) for s in session.songs]

    requirements = await requirement_lookup(db, {song.title for song in songs})
    pledged = await pledge_lookup(db, session_id)
    covered = union_covered(pledged)

    report = SessionCoverage(session_id=session_id, covered=covered)
    for song in songs:
        required = frozenset(requirements.get(song.title, ()))
        report.songs.append(SongCoverage(song=song, required=required, gap=required - covered))

    open_gaps = sum(1 for entry in report.songs if entry.gap)
    record_coverage(open_gaps)
    logger.info(
        "coverage_computed",
        session_id=session_id,
        songs=len(songs),
        commitments=len(pledged),
        open_gaps=open_gaps,
    )
    return report
