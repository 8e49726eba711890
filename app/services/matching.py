from typing import Dict, List, Optional, Set, Tuple

from app.models.matching_settings import FACTOR_NAMES, SuggestionSettings
from app.models.models import CandidateRecord, DeveloperProfile
from app.models.response import Suggestion, SuggestionFactor, SuggestionResponse, SuggestionStats
from app.services.similarity import (
    experience_similarity,
    jaccard_index,
    language_similarity,
    repo_activity_similarity,
    text_similarity,
)
from app.services.stores import ConnectionStore, ProfileStore
from app.utils.exceptions import ExceptionContext
from app.utils.logging_config import get_logger, PerformanceMonitor

logger = get_logger(__name__)

NO_PROFILE_MESSAGE = "Please save your profile to get suggestions."
FAILED_PROFILE_MESSAGE = "Your profile analysis failed. Please regenerate your profile to get suggestions."


def factor_scores(me: DeveloperProfile, other: DeveloperProfile) -> Dict[str, float]:
    """Raw [0,1] score of every similarity factor for a pair of profiles."""
    return {
        "technical_skills": jaccard_index(me.key_strengths, other.key_strengths),
        "technology_stack": jaccard_index(me.identified_technologies, other.identified_technologies),
        "language_distribution": language_similarity(me.language_stats, other.language_stats),
        "roles": jaccard_index(me.potential_roles, other.potential_roles),
        "architectural_concepts": jaccard_index(me.architectural_concepts, other.architectural_concepts),
        "experience_level": experience_similarity(me.estimated_experience, other.estimated_experience),
        "repo_activity": repo_activity_similarity(me.repo_count, other.repo_count),
        "project_insights": text_similarity(" ".join(me.project_insights), " ".join(other.project_insights)),
    }


def composite_score(factors: Dict[str, float], weights: Dict[str, float]) -> float:
    total = sum(factors[name] * weights[name] for name in weights)
    return min(1.0, max(0.0, total))


def common_technologies(mine: List[str], theirs: List[str], limit: int) -> List[str]:
    """Shared technologies in the caller's order and spelling."""
    theirs_norm = {t.lower().strip() for t in theirs}
    out, seen = [], set()
    for tech in mine:
        norm = tech.lower().strip()
        if norm in theirs_norm and norm not in seen:
            seen.add(norm)
            out.append(tech)
    return out[:limit]


def top_factors(factors: Dict[str, float], count: int) -> List[SuggestionFactor]:
    # sorted() is stable, so ties keep FACTOR_NAMES order
    ranked = sorted(FACTOR_NAMES, key=lambda name: factors[name], reverse=True)
    return [
        SuggestionFactor(factor=name, label=FACTOR_NAMES[name], score=round(factors[name], 4))
        for name in ranked[:count]
    ]


class SuggestionEngine:
    """Ranks other users as potential co-founders for the caller."""

    def __init__(self, profile_store: ProfileStore, connection_store: ConnectionStore,
                 settings: Optional[SuggestionSettings] = None):
        self.profiles = profile_store
        self.connections = connection_store
        self.settings = settings or SuggestionSettings()

    async def excluded_user_ids(self, user_id: int) -> Set[int]:
        """Users the caller is connected to or has a pending request with."""
        active = await self.connections.get_active_connections(user_id)
        sent = await self.connections.get_sent_pending(user_id)
        received = await self.connections.get_pending_received(user_id)

        excluded = set(active)
        excluded.update(r["addressee_id"] for r in sent)
        excluded.update(r["requester_id"] for r in received)
        return excluded

    def score_candidate(self, me: DeveloperProfile, other: DeveloperProfile) -> Tuple[float, Dict[str, float]]:
        factors = factor_scores(me, other)
        return composite_score(factors, self.settings.weights.as_dict()), factors

    def _build_suggestion(self, me: DeveloperProfile, candidate: CandidateRecord,
                          profile: DeveloperProfile, score: float,
                          factors: Dict[str, float]) -> Suggestion:
        s = self.settings
        return Suggestion(
            user_id=candidate.user_id,
            github_username=candidate.github_username,
            github_avatar_url=candidate.github_avatar_url,
            github_profile_url=candidate.github_profile_url,
            headline=profile.headline,
            key_strengths=profile.key_strengths[:s.key_strength_preview],
            score=round(score, 4),
            match_percentage=round(score * 100),
            compatibility=s.bands.classify(score),
            top_factors=top_factors(factors, s.top_factor_count),
            common_technologies=common_technologies(
                me.identified_technologies, profile.identified_technologies, s.common_technology_limit
            ),
            breakdown={name: round(factors[name] * 100) for name in FACTOR_NAMES},
        )

    async def get_suggestions(self, user_id: int) -> SuggestionResponse:
        with PerformanceMonitor(f"get_suggestions(user={user_id})", logger):
            with ExceptionContext("load_caller_profile", logger, user_id=user_id):
                profile_data = await self.profiles.get_profile(user_id)

            me = DeveloperProfile.from_document(profile_data) if profile_data else None
            if me is None:
                logger.info(f"User {user_id} has no saved profile; no suggestions")
                return SuggestionResponse(message=NO_PROFILE_MESSAGE)
            if not me.is_analyzed:
                logger.info(f"User {user_id} profile analysis status is '{me.analysis_status}'; no suggestions")
                return SuggestionResponse(message=FAILED_PROFILE_MESSAGE)

            with ExceptionContext("load_candidate_pool", logger, user_id=user_id):
                excluded = await self.excluded_user_ids(user_id)
                candidates = await self.profiles.list_candidates(user_id)

            scored = []
            considered = 0
            for candidate in candidates:
                if candidate.user_id == user_id or candidate.user_id in excluded:
                    continue
                profile = DeveloperProfile.from_document(candidate.profile_data)
                if profile is None or not profile.is_analyzed:
                    continue
                considered += 1
                score, factors = self.score_candidate(me, profile)
                if score < self.settings.min_score:
                    continue
                scored.append((score, candidate, profile, factors))

            scored.sort(key=lambda row: row[0], reverse=True)
            survivors = len(scored)
            average = sum(row[0] for row in scored) / survivors if survivors else 0.0

            suggestions = [
                self._build_suggestion(me, candidate, profile, score, factors)
                for score, candidate, profile, factors in scored[:self.settings.max_results]
            ]

            logger.info(
                f"Suggestions for user {user_id}: {considered} considered, "
                f"{survivors} above {self.settings.min_score}, {len(suggestions)} returned",
                extra={"excluded": len(excluded)}
            )

            if suggestions:
                message = f"Found {len(suggestions)} potential co-founder matches."
            else:
                message = "No matching co-founders found yet. Check back as more developers join."

            return SuggestionResponse(
                suggestions=suggestions,
                stats=SuggestionStats(
                    total_candidates=considered,
                    above_threshold=survivors,
                    average_score=round(average, 4),
                    returned=len(suggestions),
                ),
                message=message,
            )
