"""
Tally reader: loads counts through the results store, runs the pure tally and
keeps the vote aggregates in a short-lived cache for display.
"""
import os
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from univote.shared.cache import TTLCache
from univote.shared.errors import ElectionNotFound
from univote.shared.records import Election, ElectionStatus
from univote.results_service.tally import (
    CandidateResult, ElectionStats, build_timeline, rank_results, summarize,
)

RESULTS_CACHE_TTL = float(os.getenv("RESULTS_CACHE_TTL", "30"))
RESULTS_CACHE_TTL_ENDED = float(os.getenv("RESULTS_CACHE_TTL_ENDED", "300"))


@dataclass(frozen=True)
class TallySnapshot:
    election: Election
    results: list[CandidateResult]
    stats: ElectionStats

    def results_payload(self) -> dict:
        return {
            "election_id": self.election.id,
            "title": self.election.title,
            "status": self.stats.status,
            "total_votes": self.stats.total_votes,
            "results": [r.to_dict() for r in self.results],
        }

    def to_json(self) -> dict:
        """JSON-safe form pushed over the live channel."""
        results = self.results_payload()
        results["election_id"] = str(results["election_id"])
        for r in results["results"]:
            r["candidate_id"] = str(r["candidate_id"])
        stats = self.stats.to_dict()
        stats["election_id"] = str(stats["election_id"])
        return {"type": "results", "results": results, "stats": stats}


@dataclass(frozen=True)
class VoteAggregates:
    """Ranked per-candidate counts and the turnout denominator."""
    results: list[CandidateResult]
    eligible_voters: int


class TallyReader:
    """Reads the election row on every call so status and leader label follow
    the current dates and time. Only the vote aggregates are cached.
    """

    def __init__(self, store, cache: TTLCache):
        self.store = store
        self.cache = cache

    async def snapshot(self, election_id: UUID, now: datetime | None = None) -> TallySnapshot:
        election = await self.store.get_election(election_id)
        if election is None:
            raise ElectionNotFound()

        aggregates = await self._aggregates(election, now)
        stats = summarize(election, aggregates.results, aggregates.eligible_voters, now)
        return TallySnapshot(election, aggregates.results, stats)

    async def _aggregates(self, election: Election, now: datetime | None) -> VoteAggregates:
        cached = self.cache.get(election.id)
        if cached is not None:
            return cached

        aggregates = VoteAggregates(
            results=rank_results(await self.store.candidate_tallies(election.id)),
            eligible_voters=await self.store.eligible_voter_count(),
        )
        ttl = (RESULTS_CACHE_TTL_ENDED if election.status(now) is ElectionStatus.ENDED
               else RESULTS_CACHE_TTL)
        self.cache.set(election.id, aggregates, ttl=ttl)
        return aggregates

    def invalidate(self, election_id: UUID) -> None:
        self.cache.invalidate(election_id)

    async def timeline(self, election_id: UUID) -> list[dict]:
        if await self.store.get_election(election_id) is None:
            raise ElectionNotFound()
        return build_timeline(await self.store.hourly_vote_counts(election_id))
