import os

os.environ.setdefault("ENVIRONMENT", "testing")

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient
from pymongo.errors import DuplicateKeyError

from app.models.models import CandidateRecord, CVRecord, JobSearchHit
from app.services.stores import (
    ConnectionStore,
    CVStore,
    JobIndex,
    ProfileStore,
    STATUS_ACCEPTED,
    STATUS_PENDING,
    pair_key,
)


class InMemoryProfileStore(ProfileStore):
    def __init__(self):
        self.users: Dict[int, Dict[str, Any]] = {}
        self.profiles: Dict[int, Dict[str, Any]] = {}

    def add_user(self, user_id: int, profile_data: Optional[Dict[str, Any]] = None, username: str = None):
        self.users[user_id] = {
            "github_username": username or f"dev{user_id}",
            "github_avatar_url": f"https://avatars.example.com/{user_id}",
            "github_profile_url": f"https://github.com/dev{user_id}",
        }
        if profile_data is not None:
            self.profiles[user_id] = profile_data

    async def get_profile(self, user_id):
        return self.profiles.get(user_id)

    async def save_profile(self, user_id, profile_data):
        self.profiles[user_id] = profile_data
        return {"user_id": user_id, "profile_data": profile_data}

    async def delete_profile(self, user_id):
        return self.profiles.pop(user_id, None) is not None

    async def list_candidates(self, exclude_user_id):
        return [
            CandidateRecord(user_id=uid, profile_data=data, **self.users.get(uid, {}))
            for uid, data in self.profiles.items()
            if uid != exclude_user_id
        ]


class InMemoryConnectionStore(ConnectionStore):
    def __init__(self):
        self.rows: List[Dict[str, Any]] = []

    def add(self, requester_id: int, addressee_id: int, status: str = STATUS_PENDING) -> Dict[str, Any]:
        row = {
            "connection_id": str(uuid.uuid4()),
            "requester_id": requester_id,
            "addressee_id": addressee_id,
            "status": status,
            "pair_key": pair_key(requester_id, addressee_id),
            "created_at": datetime.utcnow(),
        }
        self.rows.append(row)
        return row

    async def get_active_connections(self, user_id):
        return [
            r["addressee_id"] if r["requester_id"] == user_id else r["requester_id"]
            for r in self.rows
            if r["status"] == STATUS_ACCEPTED and user_id in (r["requester_id"], r["addressee_id"])
        ]

    async def get_sent_pending(self, user_id):
        return [r for r in self.rows if r["requester_id"] == user_id and r["status"] == STATUS_PENDING]

    async def get_pending_received(self, user_id):
        return [r for r in self.rows if r["addressee_id"] == user_id and r["status"] == STATUS_PENDING]

    async def get_connection_between(self, user_a, user_b):
        key = pair_key(user_a, user_b)
        return next((r for r in self.rows if r["pair_key"] == key), None)

    async def create_request(self, requester_id, addressee_id):
        if await self.get_connection_between(requester_id, addressee_id):
            raise DuplicateKeyError("duplicate pair_key")
        return self.add(requester_id, addressee_id)

    async def accept_request(self, requester_id, addressee_id):
        for row in self.rows:
            if (row["requester_id"], row["addressee_id"], row["status"]) == (requester_id, addressee_id, STATUS_PENDING):
                row["status"] = STATUS_ACCEPTED
                return row
        return None

    async def delete_connection(self, connection_id, user_id):
        for row in self.rows:
            if (row["connection_id"] == connection_id
                    and user_id in (row["requester_id"], row["addressee_id"])):
                self.rows.remove(row)
                return True
        return False


class InMemoryJobIndex(JobIndex):
    def __init__(self, hits: Optional[List[JobSearchHit]] = None):
        self.hits = hits or []
        self.jobs: Dict[str, Dict[str, Any]] = {}
        self.queries: List[Tuple[str, int]] = []

    async def search(self, or_query, limit):
        self.queries.append((or_query, limit))
        return sorted(self.hits, key=lambda h: h.relevance_score, reverse=True)[:limit]

    async def list_jobs(self):
        return list(self.jobs.values())

    async def upsert_jobs(self, jobs):
        inserted, updated = 0, 0
        for job in jobs:
            if job["job_url"] in self.jobs:
                updated += 1
            else:
                inserted += 1
            self.jobs[job["job_url"]] = {"job_id": str(uuid.uuid4()), **job}
        return inserted, updated


class InMemoryCVStore(CVStore):
    def __init__(self):
        self.cvs: Dict[int, CVRecord] = {}

    async def get_cv(self, user_id):
        return self.cvs.get(user_id)

    async def save_cv(self, user_id, cv_text, original_filename):
        record = CVRecord(user_id=user_id, cv_text=cv_text, original_filename=original_filename,
                          updated_at=datetime.utcnow())
        self.cvs[user_id] = record
        return record


def make_profile(status: str = "success", **overrides) -> Dict[str, Any]:
    """Saved profile_data blob as the profile generator writes it"""
    technical = {
        "analysisStatus": status,
        "headline": "Backend engineer building data products",
        "keyStrengths": ["Python", "API Design", "Data Modeling"],
        "identifiedTechnologies": ["FastAPI", "MongoDB", "Docker", "Redis"],
        "potentialRoles": ["CTO", "Backend Lead"],
        "architecturalConcepts": ["Microservices", "Event Sourcing"],
        "languageStats": {"Python": "70.00", "Go": "20.00", "Shell": "10.00"},
        "estimatedExperience": "Senior",
        "repoCount": 20,
        "projectInsights": [
            {"name": "matchbox", "highlight": "async recommendation engine with caching"},
        ],
    }
    technical.update(overrides)
    return {"technical": technical}


@pytest.fixture
def profile_store():
    return InMemoryProfileStore()


@pytest.fixture
def connection_store():
    return InMemoryConnectionStore()


@pytest.fixture
def job_index():
    return InMemoryJobIndex()


@pytest.fixture
def cv_store():
    return InMemoryCVStore()


@pytest.fixture
def test_app(profile_store, connection_store, job_index, cv_store):
    from app.main import app
    from app import dependencies

    app.dependency_overrides[dependencies.get_profile_store] = lambda: profile_store
    app.dependency_overrides[dependencies.get_connection_store] = lambda: connection_store
    app.dependency_overrides[dependencies.get_job_index] = lambda: job_index
    app.dependency_overrides[dependencies.get_cv_store] = lambda: cv_store
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(test_app):
    return TestClient(test_app)


def auth(user_id: Any) -> Dict[str, str]:
    return {"X-User-Id": str(user_id)}
