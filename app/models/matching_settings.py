"""
Tunable settings for the suggestion engine and the CV-to-job matcher
"""
from pydantic import BaseModel, Field, model_validator
from typing import Dict, Optional


FACTOR_NAMES: Dict[str, str] = {
    "technical_skills": "Technical Skills",
    "technology_stack": "Technology Stack",
    "language_distribution": "Programming Languages",
    "roles": "Potential Roles",
    "architectural_concepts": "Architectural Concepts",
    "experience_level": "Experience Level",
    "repo_activity": "Repository Activity",
    "project_insights": "Project Insights",
}


class ProfileScoringWeights(BaseModel):
    """Weight of each similarity factor in the composite score"""
    technical_skills: float = Field(default=0.25, ge=0.0, le=1.0, description="keyStrengths overlap")
    technology_stack: float = Field(default=0.20, ge=0.0, le=1.0, description="identifiedTechnologies overlap")
    language_distribution: float = Field(default=0.15, ge=0.0, le=1.0, description="languageStats similarity")
    roles: float = Field(default=0.15, ge=0.0, le=1.0, description="potentialRoles overlap")
    architectural_concepts: float = Field(default=0.10, ge=0.0, le=1.0, description="architecturalConcepts overlap")
    experience_level: float = Field(default=0.10, ge=0.0, le=1.0, description="estimatedExperience similarity")
    repo_activity: float = Field(default=0.03, ge=0.0, le=1.0, description="repoCount ratio")
    project_insights: float = Field(default=0.02, ge=0.0, le=1.0, description="projectInsights keyword overlap")

    @model_validator(mode="after")
    def validate_total_weights(self):
        total = sum(self.as_dict().values())
        if abs(total - 1.0) > 0.01:  # Allow small floating point errors
            raise ValueError('Profile scoring weights must sum to 1.0')
        return self

    def as_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in FACTOR_NAMES}


class CompatibilityBands(BaseModel):
    """Lower bounds of the qualitative bands; anything below medium is Low"""
    excellent: float = Field(default=0.70, ge=0.0, le=1.0)
    high: float = Field(default=0.50, ge=0.0, le=1.0)
    medium: float = Field(default=0.30, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def validate_order(self):
        if not self.excellent >= self.high >= self.medium:
            raise ValueError('Band thresholds must satisfy excellent >= high >= medium')
        return self

    def classify(self, score: float) -> str:
        if score >= self.excellent:
            return "Excellent"
        if score >= self.high:
            return "High"
        if score >= self.medium:
            return "Medium"
        return "Low"


class SuggestionSettings(BaseModel):
    """Profile similarity engine configuration"""
    weights: ProfileScoringWeights = Field(default_factory=ProfileScoringWeights)
    bands: CompatibilityBands = Field(default_factory=CompatibilityBands)
    min_score: float = Field(default=0.15, ge=0.0, le=1.0, description="Candidates scoring below this are dropped")
    max_results: int = Field(default=20, ge=1, le=200, description="Maximum suggestions returned")
    top_factor_count: int = Field(default=3, ge=1, le=8)
    common_technology_limit: int = Field(default=5, ge=0)
    key_strength_preview: int = Field(default=3, ge=0)


class RerankSettings(BaseModel):
    """CV-to-job matcher configuration"""
    candidate_limit: int = Field(default=10, ge=1, le=100, description="Stage-1 candidates sent to the LLM")
    lexical_weight: float = Field(default=0.3, ge=0.0, le=1.0, description="Weight of the normalized text-search score")
    ai_weight: float = Field(default=0.7, ge=0.0, le=1.0, description="Weight of the LLM score")
    fallback_score: int = Field(default=50, ge=1, le=100, description="Score used when an LLM call fails")
    fallback_reason: str = Field(default="AI analysis could not be completed for this job.")
    max_concurrency: Optional[int] = Field(default=None, ge=1, le=100, description="Cap on concurrent LLM calls; None for no cap")

    @model_validator(mode="after")
    def validate_blend(self):
        if abs(self.lexical_weight + self.ai_weight - 1.0) > 0.01:
            raise ValueError('lexical_weight and ai_weight must sum to 1.0')
        return self
