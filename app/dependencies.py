"""
FastAPI dependency providers.

Routers never touch collections directly; they ask for stores and engines
here, and tests replace these providers through ``app.dependency_overrides``.
"""
import os
from typing import Optional

from dotenv import load_dotenv
from fastapi import Depends, Header
from pydantic import ValidationError as PydanticValidationError

from app.models.matching_settings import RerankSettings, SuggestionSettings
from app.services import db
from app.services.connection_manager import ConnectionManager, parse_user_id
from app.services.cv_matcher import CVJobMatcher
from app.services.matching import SuggestionEngine
from app.services.rerank import LLMJobScorer
from app.services.stores import (
    ConnectionStore,
    CVStore,
    JobIndex,
    MongoConnectionStore,
    MongoCVStore,
    MongoJobIndex,
    MongoProfileStore,
    ProfileStore,
)
from app.utils.exceptions import AuthenticationError, ConfigurationError
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

load_dotenv()


def load_settings():
    """Matcher tunables from the environment; bad values fail at startup."""
    try:
        suggestion = SuggestionSettings(
            min_score=os.getenv("SUGGESTION_MIN_SCORE", "0.15"),
            max_results=os.getenv("SUGGESTION_LIMIT", "20"),
        )
        rerank = RerankSettings(
            candidate_limit=os.getenv("RERANK_CANDIDATE_LIMIT", "10"),
            max_concurrency=int(os.getenv("RERANK_MAX_CONCURRENCY", "0") or 0) or None,
        )
    except (PydanticValidationError, ValueError) as e:
        raise ConfigurationError(f"Invalid matching configuration: {e}", cause=e) from e
    logger.info(
        f"Matching settings: min_score={suggestion.min_score}, limit={suggestion.max_results}, "
        f"rerank_candidates={rerank.candidate_limit}, max_concurrency={rerank.max_concurrency}"
    )
    return suggestion, rerank


SUGGESTION_SETTINGS, RERANK_SETTINGS = load_settings()


async def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> int:
    """Caller id set by the auth gateway in front of the API."""
    if x_user_id is None:
        raise AuthenticationError("Authentication token is required.")
    return parse_user_id(x_user_id, "X-User-Id")


def get_profile_store() -> ProfileStore:
    return MongoProfileStore(db.profiles_coll, db.users_coll)


def get_connection_store() -> ConnectionStore:
    return MongoConnectionStore(db.connections_coll)


def get_job_index() -> JobIndex:
    return MongoJobIndex(db.jobs_coll)


def get_cv_store() -> CVStore:
    return MongoCVStore(db.cvs_coll)


def get_job_scorer() -> LLMJobScorer:
    return LLMJobScorer()


def get_connection_manager(store: ConnectionStore = Depends(get_connection_store)) -> ConnectionManager:
    return ConnectionManager(store)


def get_suggestion_engine(
    profiles: ProfileStore = Depends(get_profile_store),
    connections: ConnectionStore = Depends(get_connection_store),
) -> SuggestionEngine:
    return SuggestionEngine(profiles, connections, SUGGESTION_SETTINGS)


def get_cv_matcher(
    cvs: CVStore = Depends(get_cv_store),
    jobs: JobIndex = Depends(get_job_index),
    scorer: LLMJobScorer = Depends(get_job_scorer),
) -> CVJobMatcher:
    return CVJobMatcher(cvs, jobs, scorer, RERANK_SETTINGS)
