"""
Storage collaborators used by the matching engines and routers.

The engines only depend on the abstract interfaces below; the Mongo
implementations are wired in by ``app.dependencies`` and tests swap in
in-memory fakes.
"""
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pymongo import DESCENDING, ReturnDocument

from app.models.models import CandidateRecord, CVRecord, JobSearchHit
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

STATUS_PENDING = "pending"
STATUS_ACCEPTED = "accepted"


def pair_key(user_a: int, user_b: int) -> str:
    low, high = sorted((int(user_a), int(user_b)))
    return f"{low}:{high}"


def query_terms(or_query: str) -> List[str]:
    """Split a ``kw1 | kw2`` query back into its keywords."""
    return [t.strip() for t in (or_query or "").split("|") if t.strip()]


# ---------------------------------------------------------------------------
# Interfaces
# ---------------------------------------------------------------------------

class ProfileStore(ABC):
    @abstractmethod
    async def get_profile(self, user_id: int) -> Optional[Dict[str, Any]]:
        """Return the stored profile_data blob or None."""

    @abstractmethod
    async def save_profile(self, user_id: int, profile_data: Dict[str, Any]) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def delete_profile(self, user_id: int) -> bool:
        ...

    @abstractmethod
    async def list_candidates(self, exclude_user_id: int) -> List[CandidateRecord]:
        """Every user with a saved profile except ``exclude_user_id``."""


class ConnectionStore(ABC):
    @abstractmethod
    async def get_active_connections(self, user_id: int) -> List[int]:
        """User ids of accepted connections in either direction."""

    @abstractmethod
    async def get_sent_pending(self, user_id: int) -> List[Dict[str, Any]]:
        """Pending rows where ``user_id`` is the requester (carry ``addressee_id``)."""

    @abstractmethod
    async def get_pending_received(self, user_id: int) -> List[Dict[str, Any]]:
        """Pending rows where ``user_id`` is the addressee (carry ``requester_id``)."""

    @abstractmethod
    async def get_connection_between(self, user_a: int, user_b: int) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def create_request(self, requester_id: int, addressee_id: int) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def accept_request(self, requester_id: int, addressee_id: int) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def delete_connection(self, connection_id: str, user_id: int) -> bool:
        """Remove a pending or accepted row the user is a party to."""


class JobIndex(ABC):
    @abstractmethod
    async def search(self, or_query: str, limit: int) -> List[JobSearchHit]:
        """Jobs matching any keyword of the OR query, best relevance first."""

    @abstractmethod
    async def list_jobs(self) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def upsert_jobs(self, jobs: List[Dict[str, Any]]) -> Tuple[int, int]:
        """Insert or update by job_url; returns (inserted, updated)."""


class CVStore(ABC):
    @abstractmethod
    async def get_cv(self, user_id: int) -> Optional[CVRecord]:
        ...

    @abstractmethod
    async def save_cv(self, user_id: int, cv_text: str, original_filename: Optional[str]) -> CVRecord:
        ...


# ---------------------------------------------------------------------------
# MongoDB implementations
# ---------------------------------------------------------------------------

class MongoProfileStore(ProfileStore):
    def __init__(self, profiles_coll, users_coll):
        self.profiles = profiles_coll
        self.users = users_coll

    async def get_profile(self, user_id: int) -> Optional[Dict[str, Any]]:
        doc = await self.profiles.find_one({"user_id": user_id})
        if not doc:
            return None
        return doc.get("profile_data")

    async def save_profile(self, user_id: int, profile_data: Dict[str, Any]) -> Dict[str, Any]:
        now = datetime.utcnow()
        doc = await self.profiles.find_one_and_update(
            {"user_id": user_id},
            {
                "$set": {"profile_data": profile_data, "updated_at": now},
                "$setOnInsert": {"created_at": now},
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        logger.debug(f"Saved profile for user {user_id}")
        return doc

    async def delete_profile(self, user_id: int) -> bool:
        result = await self.profiles.delete_one({"user_id": user_id})
        return result.deleted_count > 0

    async def list_candidates(self, exclude_user_id: int) -> List[CandidateRecord]:
        pipeline = [
            {"$match": {"user_id": {"$ne": exclude_user_id}}},
            {"$lookup": {
                "from": self.users.name,
                "localField": "user_id",
                "foreignField": "user_id",
                "as": "user",
            }},
            {"$unwind": "$user"},
        ]
        rows = await self.profiles.aggregate(pipeline).to_list(length=None)
        return [
            CandidateRecord(
                user_id=row["user_id"],
                github_username=row["user"].get("github_username"),
                github_avatar_url=row["user"].get("github_avatar_url"),
                github_profile_url=row["user"].get("github_profile_url"),
                profile_data=row.get("profile_data") or {},
            )
            for row in rows
        ]


class MongoConnectionStore(ConnectionStore):
    def __init__(self, connections_coll):
        self.connections = connections_coll

    async def get_active_connections(self, user_id: int) -> List[int]:
        cursor = self.connections.find({
            "status": STATUS_ACCEPTED,
            "$or": [{"requester_id": user_id}, {"addressee_id": user_id}],
        })
        rows = await cursor.to_list(length=None)
        return [
            row["addressee_id"] if row["requester_id"] == user_id else row["requester_id"]
            for row in rows
        ]

    async def get_sent_pending(self, user_id: int) -> List[Dict[str, Any]]:
        cursor = self.connections.find(
            {"requester_id": user_id, "status": STATUS_PENDING}, {"_id": 0}
        ).sort("created_at", DESCENDING)
        return await cursor.to_list(length=None)

    async def get_pending_received(self, user_id: int) -> List[Dict[str, Any]]:
        cursor = self.connections.find(
            {"addressee_id": user_id, "status": STATUS_PENDING}, {"_id": 0}
        ).sort("created_at", DESCENDING)
        return await cursor.to_list(length=None)

    async def get_connection_between(self, user_a: int, user_b: int) -> Optional[Dict[str, Any]]:
        return await self.connections.find_one({"pair_key": pair_key(user_a, user_b)}, {"_id": 0})

    async def create_request(self, requester_id: int, addressee_id: int) -> Dict[str, Any]:
        now = datetime.utcnow()
        doc = {
            "connection_id": str(uuid.uuid4()),
            "requester_id": requester_id,
            "addressee_id": addressee_id,
            "status": STATUS_PENDING,
            "pair_key": pair_key(requester_id, addressee_id),
            "created_at": now,
            "updated_at": now,
        }
        await self.connections.insert_one(doc)
        doc.pop("_id", None)
        return doc

    async def accept_request(self, requester_id: int, addressee_id: int) -> Optional[Dict[str, Any]]:
        return await self.connections.find_one_and_update(
            {"requester_id": requester_id, "addressee_id": addressee_id, "status": STATUS_PENDING},
            {"$set": {"status": STATUS_ACCEPTED, "updated_at": datetime.utcnow()}},
            projection={"_id": 0},
            return_document=ReturnDocument.AFTER,
        )

    async def delete_connection(self, connection_id: str, user_id: int) -> bool:
        result = await self.connections.delete_one({
            "connection_id": connection_id,
            "$or": [{"requester_id": user_id}, {"addressee_id": user_id}],
        })
        return result.deleted_count > 0


class MongoJobIndex(JobIndex):
    def __init__(self, jobs_coll):
        self.jobs = jobs_coll

    async def search(self, or_query: str, limit: int) -> List[JobSearchHit]:
        terms = query_terms(or_query)
        if not terms:
            return []
        # $text treats space separated terms as a disjunction
        cursor = self.jobs.find(
            {"$text": {"$search": " ".join(terms), "$language": "english"}},
            {
                "job_id": 1, "job_title": 1, "company_name": 1, "job_url": 1,
                "description_html": 1, "description_text": 1,
                "relevance": {"$meta": "textScore"},
            },
        ).sort([("relevance", {"$meta": "textScore"})]).limit(limit)
        rows = await cursor.to_list(length=limit)
        return [
            JobSearchHit(
                id=str(row.get("job_id") or row["_id"]),
                title=row.get("job_title") or "",
                company=row.get("company_name"),
                url=row.get("job_url") or "",
                description=row.get("description_text") or row.get("description_html") or "",
                relevance_score=float(row.get("relevance") or 0.0),
            )
            for row in rows
        ]

    async def list_jobs(self) -> List[Dict[str, Any]]:
        cursor = self.jobs.find(
            {}, {"_id": 0, "description_text": 0}
        ).sort("created_at", DESCENDING)
        return await cursor.to_list(length=None)

    async def upsert_jobs(self, jobs: List[Dict[str, Any]]) -> Tuple[int, int]:
        inserted, updated = 0, 0
        now = datetime.utcnow()
        for job in jobs:
            result = await self.jobs.update_one(
                {"job_url": job["job_url"]},
                {
                    "$set": {**job, "updated_at": now},
                    "$setOnInsert": {"job_id": str(uuid.uuid4()), "created_at": now},
                },
                upsert=True,
            )
            if result.upserted_id is not None:
                inserted += 1
            else:
                updated += 1
        return inserted, updated


class MongoCVStore(CVStore):
    def __init__(self, cvs_coll):
        self.cvs = cvs_coll

    async def get_cv(self, user_id: int) -> Optional[CVRecord]:
        doc = await self.cvs.find_one({"user_id": user_id})
        if not doc:
            return None
        return CVRecord(
            user_id=doc["user_id"],
            cv_text=doc.get("cv_text") or "",
            original_filename=doc.get("original_filename"),
            updated_at=doc.get("updated_at"),
        )

    async def save_cv(self, user_id: int, cv_text: str, original_filename: Optional[str]) -> CVRecord:
        now = datetime.utcnow()
        await self.cvs.update_one(
            {"user_id": user_id},
            {
                "$set": {"cv_text": cv_text, "original_filename": original_filename, "updated_at": now},
                "$setOnInsert": {"created_at": now},
            },
            upsert=True,
        )
        return CVRecord(user_id=user_id, cv_text=cv_text, original_filename=original_filename, updated_at=now)
