from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from univote.election_service.app import app, get_store
from univote.election_service.store import CandidateHasVotes
from univote.shared.records import Candidate, Election

from conftest import (
    FakeVotingStore, admin_token, auth_header, make_candidate, make_election,
    make_voter, seed_vote, voter_token,
)

client = TestClient(app)


class FakeElectionStore:
    """Election store backed by the shared in-memory tables."""

    def __init__(self, tables: FakeVotingStore):
        self.tables = tables

    async def list_elections(self, active_only=False):
        rows = []
        for e in sorted(self.tables.elections.values(), key=lambda e: e.start_date, reverse=True):
            if active_only and not (e.is_active and e.status().value == "active"):
                continue
            rows.append({
                "election": e,
                "candidate_count": len(await self.list_candidates(e.id)),
                "total_votes": await self.count_votes(e.id),
            })
        return rows

    async def get_election(self, election_id):
        return self.tables.elections.get(election_id)

    async def list_candidates(self, election_id):
        return sorted(
            (c for c in self.tables.candidates.values() if c.election_id == election_id),
            key=lambda c: (c.full_name, str(c.id)),
        )

    async def count_votes(self, election_id):
        return sum(1 for v in self.tables.votes if v.election_id == election_id)

    async def create_election(self, admin_id, data):
        now = datetime.now(timezone.utc)
        election = Election(
            id=uuid4(), title=data.title, description=data.description,
            start_date=data.start_date, end_date=data.end_date, is_active=data.is_active,
            created_by=admin_id, created_at=now, updated_at=now,
        )
        self.tables.add(election)
        for c in data.candidates:
            await self.add_candidate(election.id, c)
        return election

    async def update_election(self, election_id, changes):
        election = self.tables.elections.get(election_id)
        if election is None:
            return None
        updated = election.model_copy(update=changes)
        self.tables.elections[election_id] = updated
        return updated

    async def delete_election(self, election_id):
        if self.tables.elections.pop(election_id, None) is None:
            return False
        self.tables.candidates = {
            k: c for k, c in self.tables.candidates.items() if c.election_id != election_id
        }
        self.tables.votes = [v for v in self.tables.votes if v.election_id != election_id]
        return True

    async def add_candidate(self, election_id, data):
        candidate = Candidate(
            id=uuid4(), election_id=election_id, created_at=datetime.now(timezone.utc),
            **data.model_dump(),
        )
        self.tables.add(candidate)
        return candidate

    async def get_candidate(self, candidate_id):
        return self.tables.candidates.get(candidate_id)

    async def update_candidate(self, candidate_id, changes):
        candidate = self.tables.candidates.get(candidate_id)
        if candidate is None:
            return None
        updated = candidate.model_copy(update=changes)
        self.tables.candidates[candidate_id] = updated
        return updated

    async def delete_candidate(self, candidate_id):
        if any(v.candidate_id == candidate_id for v in self.tables.votes):
            raise CandidateHasVotes()
        return self.tables.candidates.pop(candidate_id, None) is not None


@pytest.fixture
def tables(voting_store):
    app.dependency_overrides[get_store] = lambda: FakeElectionStore(voting_store)
    yield voting_store
    app.dependency_overrides.clear()


@pytest.fixture
def admin():
    return auth_header(admin_token())


def _election_payload(**overrides):
    start = datetime.now(timezone.utc) + timedelta(days=1)
    payload = {
        "title": "Faculty Representative",
        "description": "Engineering faculty seat",
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(days=2)).isoformat(),
        "candidates": [
            {"full_name": "Chidi", "department": "Engineering", "course": "BEng Civil"},
            {"full_name": "Bola", "department": "Engineering", "course": "BEng Mechanical",
             "year_of_study": 4},
        ],
    }
    payload.update(overrides)
    return payload


def test_create_election_with_candidates(tables, admin):
    response = client.post("/elections", json=_election_payload(), headers=admin)

    assert response.status_code == 201
    election_id = response.json()["election_id"]

    detail = client.get(f"/elections/{election_id}").json()
    assert detail["election"]["status"] == "upcoming"
    assert detail["election"]["candidate_count"] == 2
    assert [c["full_name"] for c in detail["candidates"]] == ["Bola", "Chidi"]


def test_create_election_rejects_inverted_dates(tables, admin):
    start = datetime.now(timezone.utc)
    payload = _election_payload(start_date=start.isoformat(),
                                end_date=(start - timedelta(hours=1)).isoformat())

    response = client.post("/elections", json=payload, headers=admin)

    assert response.status_code == 422
    assert tables.elections == {}


def test_create_election_requires_admin(tables):
    response = client.post("/elections", json=_election_payload(),
                           headers=auth_header(voter_token(uuid4())))
    assert response.status_code == 403


def test_list_elections_derives_status(tables, active_election):
    now = datetime.now(timezone.utc)
    ended = make_election(start=now - timedelta(days=5), end=now - timedelta(days=4), title="Old")
    tables.add(active_election, ended, make_candidate(active_election, "Chidi"))

    body = client.get("/elections").json()
    assert {e["title"]: e["status"] for e in body} == {
        active_election.title: "active", "Old": "ended",
    }

    active = client.get("/elections", params={"active_only": True}).json()
    assert [e["id"] for e in active] == [str(active_election.id)]
    assert active[0]["candidate_count"] == 1


def test_update_election_validates_merged_dates(tables, admin, active_election):
    tables.add(active_election)
    too_early = (active_election.start_date - timedelta(hours=1)).isoformat()

    response = client.patch(f"/elections/{active_election.id}",
                            json={"end_date": too_early}, headers=admin)
    assert response.status_code == 400

    response = client.patch(f"/elections/{active_election.id}",
                            json={"title": "Renamed"}, headers=admin)
    assert response.status_code == 200
    assert response.json()["title"] == "Renamed"


def test_delete_election_cascades(tables, admin, active_election):
    chidi = make_candidate(active_election, "Chidi")
    tables.add(active_election, chidi)
    seed_vote(tables, make_voter(), chidi)

    response = client.delete(f"/elections/{active_election.id}", headers=admin)

    assert response.status_code == 200
    assert tables.candidates == {}
    assert tables.votes == []
    assert client.get(f"/elections/{active_election.id}").status_code == 404


def test_add_candidate_to_active_election(tables, admin, active_election):
    tables.add(active_election)

    response = client.post(
        f"/elections/{active_election.id}/candidates",
        json={"full_name": "Late Entrant", "department": "Law", "course": "LLB"},
        headers=admin,
    )

    assert response.status_code == 201
    assert response.json()["election_id"] == str(active_election.id)


def test_update_candidate_ignores_null_required_fields(tables, admin, active_election):
    chidi = make_candidate(active_election, "Chidi")
    tables.add(active_election, chidi)

    response = client.patch(f"/candidates/{chidi.id}",
                            json={"department": None, "manifesto": None}, headers=admin)

    assert response.status_code == 200
    assert response.json()["department"] == chidi.department
    assert response.json()["manifesto"] is None


def test_candidate_with_votes_cannot_be_deleted(tables, admin, active_election):
    chidi = make_candidate(active_election, "Chidi")
    bola = make_candidate(active_election, "Bola")
    tables.add(active_election, chidi, bola)
    seed_vote(tables, make_voter(), chidi)

    assert client.delete(f"/candidates/{chidi.id}", headers=admin).status_code == 409
    assert client.delete(f"/candidates/{bola.id}", headers=admin).status_code == 200
    assert client.delete(f"/candidates/{bola.id}", headers=admin).status_code == 404


def test_update_election_rejects_naive_date(tables, admin, active_election):
    tables.add(active_election)

    response = client.patch(f"/elections/{active_election.id}",
                            json={"end_date": "2030-01-01T00:00:00"}, headers=admin)

    assert response.status_code == 422
    assert tables.elections[active_election.id].end_date == active_election.end_date


def test_create_election_rejects_mixed_timezone_dates(tables, admin):
    payload = _election_payload(start_date="2030-01-01T09:00:00",
                                end_date="2030-01-02T09:00:00+00:00")

    response = client.post("/elections", json=payload, headers=admin)

    assert response.status_code == 422
    assert tables.elections == {}


def test_create_election_accepts_offset_dates(tables, admin):
    payload = _election_payload(start_date="2030-01-01T09:00:00+01:00",
                                end_date="2030-01-01T09:30:00+00:00")

    response = client.post("/elections", json=payload, headers=admin)

    assert response.status_code == 201
