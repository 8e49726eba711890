# models/response.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# -------- Suggestions --------
class SuggestionFactor(_CamelModel):
    factor: str
    label: str
    score: float


class Suggestion(_CamelModel):
    user_id: int
    github_username: Optional[str] = None
    github_avatar_url: Optional[str] = None
    github_profile_url: Optional[str] = None
    headline: str = ""
    key_strengths: List[str] = Field(default_factory=list, alias="keyStrengths")
    score: float
    match_percentage: int = Field(alias="matchPercentage")
    compatibility: str
    top_factors: List[SuggestionFactor] = Field(default_factory=list, alias="topFactors")
    common_technologies: List[str] = Field(default_factory=list, alias="commonTechnologies")
    breakdown: Dict[str, int] = Field(default_factory=dict)


class SuggestionStats(_CamelModel):
    total_candidates: int = Field(default=0, alias="totalCandidates")
    above_threshold: int = Field(default=0, alias="aboveThreshold")
    average_score: float = Field(default=0.0, alias="averageScore")
    returned: int = 0


class SuggestionResponse(_CamelModel):
    suggestions: List[Suggestion] = Field(default_factory=list)
    stats: SuggestionStats = Field(default_factory=SuggestionStats)
    message: str = ""


# -------- CV matching --------
class AIAnalysisOut(_CamelModel):
    score: int
    reason: str


class MatchedJob(_CamelModel):
    id: str
    title: str
    company: Optional[str] = None
    url: str
    description: str = ""
    score: float = Field(description="Raw text-search relevance")
    lexical_score: float = Field(alias="lexicalScore", description="Relevance normalized by the batch maximum")
    ai_analysis: AIAnalysisOut = Field(alias="aiAnalysis")
    final_score: float = Field(alias="finalScore")


class CVMatchResponse(_CamelModel):
    message: str
    matched_jobs: List[MatchedJob] = Field(default_factory=list, alias="matchedJobs")


# -------- Job import --------
class JobImportResult(_CamelModel):
    success: bool
    message: str
    total_processed: int = Field(default=0, alias="totalProcessed")
    inserted_count: int = Field(default=0, alias="insertedCount")
    updated_count: int = Field(default=0, alias="updatedCount")
