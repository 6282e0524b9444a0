"""
Results Service — result tallying, statistics, activity timeline and live push.

This service owns the results bounded context end-to-end:
    - JSON API endpoints: results, stats, timeline, admin dashboard
    - WebSocket endpoint streaming recomputed results as votes land
    - Read-only DB access for votes, elections, candidates, voters

Live updates arrive over LISTEN/NOTIFY; every subscriber is also refreshed on a
fixed interval so a dropped database connection only delays updates.

Runs on port 5004.
"""
import asyncio
import logging
import os
from contextlib import asynccontextmanager
from uuid import UUID

from fastapi import Depends, FastAPI, WebSocket

from univote.shared.auth import require_admin
from univote.shared.cache import TTLCache
from univote.shared.database import Database
from univote.shared.errors import (
    TRANSIENT_ERRORS, ElectionNotFound, VoteError, vote_error_handler,
)
from univote.shared.schemas import (
    DashboardStatsOut, ElectionResultsOut, ElectionStatsOut, HealthResponse, TimelineOut,
)
from univote.results_service.live import VoteFeed, drain
from univote.results_service.reader import RESULTS_CACHE_TTL, TallyReader
from univote.results_service.store import ResultsStore

logger = logging.getLogger("results-service")

LIVE_REFRESH_SECONDS = float(os.getenv("LIVE_REFRESH_SECONDS", "30"))

results_cache = TTLCache(ttl=RESULTS_CACHE_TTL)


# ── Lifespan ─────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(application: FastAPI):
    await Database.get_pool()
    application.state.feed = VoteFeed(on_event=results_cache.invalidate)
    try:
        await application.state.feed.start()
    except Exception as e:
        # Subscribers still get the periodic refresh.
        logger.error(f"Live vote feed unavailable, falling back to polling: {e}")
    yield
    await application.state.feed.stop()
    await Database.close()


app = FastAPI(
    title="Results Service",
    description="Election result tallying, statistics and live results",
    lifespan=lifespan,
)
app.add_exception_handler(VoteError, vote_error_handler)


# ── Dependencies ─────────────────────────────────────────────────────────────

def get_store() -> ResultsStore:
    return ResultsStore()


def get_reader(store: ResultsStore = Depends(get_store)) -> TallyReader:
    return TallyReader(store, results_cache)


def get_feed(websocket: WebSocket) -> VoteFeed:
    return websocket.app.state.feed


# ── Routes ───────────────────────────────────────────────────────────────────

@app.get("/health", response_model=HealthResponse)
async def health():
    return {"status": "healthy", "service": "results"}


@app.get("/elections/{election_id}/results", response_model=ElectionResultsOut)
async def get_results(election_id: UUID, reader: TallyReader = Depends(get_reader)):
    """Per-candidate counts and percentages, highest first."""
    snapshot = await reader.snapshot(election_id)
    return snapshot.results_payload()


@app.get("/elections/{election_id}/stats", response_model=ElectionStatsOut)
async def get_stats(election_id: UUID, reader: TallyReader = Depends(get_reader)):
    """Totals, leader and turnout. ``leader_label`` is "Winner" only once ended."""
    snapshot = await reader.snapshot(election_id)
    return snapshot.stats.to_dict()


@app.get("/elections/{election_id}/timeline", response_model=TimelineOut)
async def get_timeline(election_id: UUID, reader: TallyReader = Depends(get_reader)):
    """Votes per hour with a running total."""
    return {"election_id": election_id, "timeline": await reader.timeline(election_id)}


@app.get("/dashboard", response_model=DashboardStatsOut)
async def dashboard(admin_id: UUID = Depends(require_admin),
                    store: ResultsStore = Depends(get_store)):
    """Platform-wide counters for the admin dashboard."""
    return await store.dashboard_stats()


# ── Live results ─────────────────────────────────────────────────────────────

@app.websocket("/elections/{election_id}/live")
async def live_results(websocket: WebSocket, election_id: UUID,
                       reader: TallyReader = Depends(get_reader),
                       feed: VoteFeed = Depends(get_feed)):
    """Push a snapshot on connect, then again on each new vote or refresh tick."""
    await websocket.accept()
    try:
        snapshot = await reader.snapshot(election_id)
    except ElectionNotFound as e:
        await websocket.send_json({"type": "error", "detail": e.message})
        await websocket.close(code=4404)
        return
    await websocket.send_json(snapshot.to_json())

    disconnected = asyncio.create_task(_until_disconnect(websocket))
    try:
        async with feed.subscribe(election_id) as queue:
            while True:
                getter = asyncio.create_task(queue.get())
                done, _ = await asyncio.wait(
                    {getter, disconnected},
                    timeout=LIVE_REFRESH_SECONDS,
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if getter not in done:
                    getter.cancel()
                if disconnected in done:
                    break
                if getter in done:
                    drain(queue)
                    reader.invalidate(election_id)

                try:
                    snapshot = await reader.snapshot(election_id)
                except (VoteError, *TRANSIENT_ERRORS) as e:
                    logger.warning(f"Live refresh failed for election {election_id}: {e}")
                    continue
                await websocket.send_json(snapshot.to_json())
    finally:
        disconnected.cancel()


async def _until_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return
