from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Dict, List, Optional


def _as_text(x: Any) -> str:
    if x is None:
        return ""
    if isinstance(x, list):
        return " ".join([str(t).strip() for t in x if str(t).strip()])
    return str(x).strip()


def _as_list(x: Any) -> List[str]:
    if x is None:
        return []
    if isinstance(x, str):
        # split on commas/semicolons; normalize tokens
        parts = [p.strip() for p in x.replace(";", ",").split(",")]
        return [p for p in parts if p]
    if isinstance(x, (list, tuple, set)):
        return [str(t).strip() for t in x if t is not None and str(t).strip()]
    return []


class DeveloperProfile(BaseModel):
    """Technical half of a saved co-founder profile, as written by the generator."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    analysis_status: str = Field(default="failed", alias="analysisStatus")
    headline: str = ""
    co_founder_summary: str = Field(default="", alias="coFounderSummary")
    key_strengths: List[str] = Field(default_factory=list, alias="keyStrengths")
    identified_technologies: List[str] = Field(default_factory=list, alias="identifiedTechnologies")
    potential_roles: List[str] = Field(default_factory=list, alias="potentialRoles")
    architectural_concepts: List[str] = Field(default_factory=list, alias="architecturalConcepts")
    language_stats: Dict[str, float] = Field(default_factory=dict, alias="languageStats")
    estimated_experience: str = Field(default="", alias="estimatedExperience")
    repo_count: int = Field(default=0, ge=0, alias="repoCount")
    project_insights: List[str] = Field(default_factory=list, alias="projectInsights")

    @field_validator("key_strengths", "identified_technologies", "potential_roles",
                     "architectural_concepts", mode="before")
    @classmethod
    def _coerce_labels(cls, v):
        return _as_list(v)

    @field_validator("headline", "co_founder_summary", "estimated_experience", mode="before")
    @classmethod
    def _coerce_text(cls, v):
        return _as_text(v)

    @field_validator("analysis_status", mode="before")
    @classmethod
    def _coerce_status(cls, v):
        return _as_text(v).lower() or "failed"

    @field_validator("language_stats", mode="before")
    @classmethod
    def _coerce_language_stats(cls, v):
        # generator writes percentages as "45.20" strings
        if not isinstance(v, dict):
            return {}
        out = {}
        for lang, pct in v.items():
            try:
                out[str(lang)] = max(0.0, float(pct))
            except (TypeError, ValueError):
                continue
        return out

    @field_validator("repo_count", mode="before")
    @classmethod
    def _coerce_repo_count(cls, v):
        try:
            return max(0, int(v or 0))
        except (TypeError, ValueError):
            return 0

    @field_validator("project_insights", mode="before")
    @classmethod
    def _coerce_insights(cls, v):
        if v is None:
            return []
        if not isinstance(v, list):
            v = [v]
        items = []
        for item in v:
            if isinstance(item, dict):
                text = " ".join(_as_text(item.get(k)) for k in ("name", "highlight") if item.get(k))
            else:
                text = _as_text(item)
            if text:
                items.append(text)
        return items

    @property
    def is_analyzed(self) -> bool:
        return self.analysis_status == "success"

    @classmethod
    def from_document(cls, profile_data: Any) -> Optional["DeveloperProfile"]:
        """Build from a stored profile_data blob, nested under ``technical`` or flat."""
        if not isinstance(profile_data, dict):
            return None
        technical = profile_data.get("technical", profile_data)
        if not isinstance(technical, dict):
            return None
        return cls.model_validate(technical)


class CandidateRecord(BaseModel):
    """One row of the candidate pool: a user joined with their saved profile."""
    user_id: int
    github_username: Optional[str] = None
    github_avatar_url: Optional[str] = None
    github_profile_url: Optional[str] = None
    profile_data: Dict[str, Any] = Field(default_factory=dict)


class JobSearchHit(BaseModel):
    """Stage-1 result from the job text index."""
    id: str
    title: str
    company: Optional[str] = None
    url: str
    description: str = ""
    relevance_score: float = 0.0


class AIAnalysis(BaseModel):
    score: int
    reason: str


class CVRecord(BaseModel):
    user_id: int
    cv_text: str
    original_filename: Optional[str] = None
    updated_at: Optional[Any] = None
