"""
Pure tally functions: vote counts in, ranked results and statistics out.

Nothing here touches the database, so the same computation serves the JSON
endpoints, the live WebSocket push and the periodic refresh.
"""
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Iterable, Mapping
from uuid import UUID

from univote.shared.records import Election, ElectionStatus

NO_VOTES_YET = "No votes yet"
LABEL_WINNER = "Winner"
LABEL_LEADING = "Currently Leading"


@dataclass(frozen=True)
class CandidateResult:
    candidate_id: UUID
    name: str
    department: str
    course: str
    year_of_study: int | None
    image_url: str | None
    vote_count: int
    vote_percentage: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ElectionStats:
    election_id: UUID
    status: str
    total_votes: int
    total_candidates: int
    leading_candidate_name: str
    leading_votes: int
    leading_percentage: float
    voter_turnout_percentage: float
    leader_label: str | None

    def to_dict(self) -> dict:
        return asdict(self)


def percentage(part: int, whole: int) -> float:
    """100 * part / whole rounded to 2 places; 0 when whole is 0."""
    if whole <= 0:
        return 0.0
    return round(part / whole * 100, 2)


def rank_results(rows: Iterable[Mapping]) -> list[CandidateResult]:
    """Rank candidate rows by votes.

    Each row carries candidate_id, full_name, department, course,
    year_of_study, image_url and vote_count. Ties are broken by name, then id.
    """
    rows = list(rows)
    total = sum(int(r["vote_count"]) for r in rows)
    ordered = sorted(
        rows,
        key=lambda r: (-int(r["vote_count"]), r["full_name"], str(r["candidate_id"])),
    )
    return [
        CandidateResult(
            candidate_id=r["candidate_id"],
            name=r["full_name"],
            department=r["department"],
            course=r["course"],
            year_of_study=r.get("year_of_study"),
            image_url=r.get("image_url"),
            vote_count=int(r["vote_count"]),
            vote_percentage=percentage(int(r["vote_count"]), total),
        )
        for r in ordered
    ]


def leader_label(status: ElectionStatus, total_votes: int) -> str | None:
    """Only an ended election has a winner; before that the top entry is leading."""
    if total_votes == 0:
        return None
    return LABEL_WINNER if status is ElectionStatus.ENDED else LABEL_LEADING


def summarize(election: Election, results: list[CandidateResult],
              eligible_voters: int, now: datetime | None = None) -> ElectionStats:
    status = election.status(now)
    total = sum(r.vote_count for r in results)
    leader = results[0] if results and total > 0 else None

    return ElectionStats(
        election_id=election.id,
        status=status.value,
        total_votes=total,
        total_candidates=len(results),
        leading_candidate_name=leader.name if leader else NO_VOTES_YET,
        leading_votes=leader.vote_count if leader else 0,
        leading_percentage=leader.vote_percentage if leader else 0.0,
        voter_turnout_percentage=percentage(total, eligible_voters),
        leader_label=leader_label(status, total),
    )


def floor_to_hour(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).replace(minute=0, second=0, microsecond=0)


def build_timeline(hourly_counts: Iterable[tuple[datetime, int]]) -> list[dict]:
    """Hourly vote counts with a running total, oldest hour first.

    Buckets sharing the same UTC hour are merged.
    """
    buckets: dict[datetime, int] = {}
    for hour, count in hourly_counts:
        key = floor_to_hour(hour)
        buckets[key] = buckets.get(key, 0) + int(count)

    timeline = []
    cumulative = 0
    for hour in sorted(buckets):
        cumulative += buckets[hour]
        timeline.append({
            "hour": hour,
            "vote_count": buckets[hour],
            "cumulative_votes": cumulative,
        })
    return timeline
