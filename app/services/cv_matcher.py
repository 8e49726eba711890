"""
Two-stage CV-to-job matching.

Stage 1 pulls a small candidate set from the job text index using every
meaningful CV keyword OR-ed together. Stage 2 asks the LLM to score each
candidate concurrently, then the two scores are blended into the final
ranking. A failed LLM call only degrades its own job to the neutral
fallback score.
"""
import asyncio
import re
from typing import List, Optional

from app.models.matching_settings import RerankSettings
from app.models.models import AIAnalysis, JobSearchHit
from app.models.response import AIAnalysisOut, CVMatchResponse, MatchedJob
from app.services.rerank import parse_ai_score
from app.services.stores import CVStore, JobIndex
from app.utils.exceptions import ExceptionContext, NotFoundError
from app.utils.logging_config import get_logger, PerformanceMonitor

logger = get_logger(__name__)

QUERY_STOPWORDS = frozenset({
    "a", "about", "an", "and", "are", "as", "at", "be", "by", "com", "for", "from",
    "how", "i", "in", "is", "it", "of", "on", "or", "that", "the", "this", "to",
    "was", "what", "when", "where", "who", "will", "with", "www", "etc",
    "ltd", "plc", "sri", "lanka", "but", "if", "we", "our", "you", "your",
})

OR_SEPARATOR = " | "
_WORD = re.compile(r"\b\w+\b")

NO_CV_MESSAGE = "No CV found. Please upload a CV first."
NO_KEYWORDS_MESSAGE = "Could not extract any relevant keywords from your CV."


def extract_keywords(cv_text: Optional[str]) -> List[str]:
    """Unique lowercase keywords in order of first appearance."""
    if not cv_text or not cv_text.strip():
        return []
    seen = set()
    keywords = []
    for word in _WORD.findall(cv_text):
        word = word.lower()
        if len(word) <= 2 or word in QUERY_STOPWORDS or word in seen:
            continue
        seen.add(word)
        keywords.append(word)
    return keywords


def build_or_query(cv_text: Optional[str]) -> str:
    return OR_SEPARATOR.join(extract_keywords(cv_text))


def blend_scores(lexical_normalized: float, ai_score: int, settings: RerankSettings) -> float:
    return settings.lexical_weight * lexical_normalized + settings.ai_weight * (ai_score / 100)


class CVJobMatcher:
    def __init__(self, cv_store: CVStore, job_index: JobIndex, scorer,
                 settings: Optional[RerankSettings] = None):
        self.cvs = cv_store
        self.jobs = job_index
        self.scorer = scorer
        self.settings = settings or RerankSettings()

    async def match_for_user(self, user_id: int) -> CVMatchResponse:
        with ExceptionContext("load_user_cv", logger, user_id=user_id):
            cv = await self.cvs.get_cv(user_id)
        if cv is None or not cv.cv_text:
            raise NotFoundError(NO_CV_MESSAGE, resource="cv")
        return await self.match_text(cv.cv_text)

    async def match_text(self, cv_text: str) -> CVMatchResponse:
        query = build_or_query(cv_text)
        if not query:
            logger.info("CV produced no search keywords; skipping job search")
            return CVMatchResponse(message=NO_KEYWORDS_MESSAGE, matched_jobs=[])

        with PerformanceMonitor("cv_job_match", logger, threshold_ms=10000):
            with ExceptionContext("job_text_search", logger):
                candidates = await self.jobs.search(query, self.settings.candidate_limit)
            logger.info(f"Stage 1 returned {len(candidates)} candidate jobs")

            if not candidates:
                return CVMatchResponse(message="Found 0 relevant jobs based on your CV.", matched_jobs=[])

            analyses = await self._rerank(cv_text, candidates)
            matched = self._blend(candidates, analyses)

        return CVMatchResponse(
            message=f"Found {len(matched)} relevant jobs based on your CV.",
            matched_jobs=matched,
        )

    async def _rerank(self, cv_text: str, candidates: List[JobSearchHit]) -> List[AIAnalysis]:
        semaphore = asyncio.Semaphore(self.settings.max_concurrency) if self.settings.max_concurrency else None

        async def score_one(job: JobSearchHit) -> AIAnalysis:
            if semaphore is None:
                return await self._score_or_fallback(cv_text, job)
            async with semaphore:
                return await self._score_or_fallback(cv_text, job)

        return await asyncio.gather(*(score_one(job) for job in candidates))

    async def _score_or_fallback(self, cv_text: str, job: JobSearchHit) -> AIAnalysis:
        try:
            result = await self.scorer.score(cv_text, job.description)
            score = parse_ai_score(getattr(result, "score", None))
            reason = str(getattr(result, "reason", "") or "").strip() or "Analysis complete."
            return AIAnalysis(score=score, reason=reason)
        except Exception as e:
            logger.warning(f"AI re-rank failed for job {job.id}, using fallback score: {e}")
            return AIAnalysis(score=self.settings.fallback_score, reason=self.settings.fallback_reason)

    def _blend(self, candidates: List[JobSearchHit], analyses: List[AIAnalysis]) -> List[MatchedJob]:
        max_relevance = max(job.relevance_score for job in candidates)
        if max_relevance <= 0:
            max_relevance = 1.0

        matched = []
        for job, analysis in zip(candidates, analyses):
            lexical = job.relevance_score / max_relevance
            matched.append(MatchedJob(
                id=job.id,
                title=job.title,
                company=job.company,
                url=job.url,
                description=job.description,
                score=job.relevance_score,
                lexical_score=round(lexical, 4),
                ai_analysis=AIAnalysisOut(score=analysis.score, reason=analysis.reason),
                final_score=round(blend_scores(lexical, analysis.score, self.settings), 4),
            ))
        matched.sort(key=lambda m: m.final_score, reverse=True)
        return matched
