"""
LLM scorer for the CV-to-job re-rank stage.
"""
import asyncio
from typing import Any, Callable, Optional

import requests

from app.helpers.prompts import RERANK_PROMPT, RERANK_SYSTEM_PROMPT
from app.models.models import AIAnalysis
from app.utils.exceptions import ExternalServiceError, ModelError
from app.utils.logging_config import get_logger
from app.utils.utils import LLM_MODEL, extract_json, ollama_generate

logger = get_logger(__name__)

MIN_AI_SCORE = 1
MAX_AI_SCORE = 100


def parse_ai_score(value: Any) -> int:
    """Strict integer in [1, 100]; floats with a fractional part and bools are rejected."""
    if isinstance(value, bool):
        raise ValueError("ai_score must be an integer")
    if isinstance(value, int):
        score = value
    elif isinstance(value, float) and value.is_integer():
        score = int(value)
    elif isinstance(value, str) and value.strip().lstrip("+-").isdigit():
        score = int(value.strip())
    else:
        raise ValueError(f"ai_score is not an integer: {value!r}")
    if not MIN_AI_SCORE <= score <= MAX_AI_SCORE:
        raise ValueError(f"ai_score {score} outside {MIN_AI_SCORE}-{MAX_AI_SCORE}")
    return score


class LLMJobScorer:
    """Asks the model how well a CV fits one job description."""

    def __init__(self, model: Optional[str] = None, temperature: float = 0.2,
                 generate: Callable[..., str] = ollama_generate):
        self.model = model or LLM_MODEL
        self.temperature = temperature
        self._generate = generate

    async def score(self, cv_text: str, job_description: str) -> AIAnalysis:
        prompt = RERANK_PROMPT.format(cv_text=cv_text, job_description=job_description)
        try:
            # requests is blocking; keep the event loop free for the other calls in the batch
            raw = await asyncio.to_thread(
                self._generate, prompt, self.model, self.temperature, RERANK_SYSTEM_PROMPT, True
            )
        except requests.RequestException as e:
            status = getattr(e.response, "status_code", None)
            raise ExternalServiceError(f"Ollama request failed: {e}", service_name="ollama",
                                       status_code=status, cause=e) from e
        except Exception as e:
            raise ModelError(f"LLM call failed: {e}", model_name=self.model, model_type="llm", cause=e) from e

        try:
            data = extract_json(raw)
            score = parse_ai_score(data.get("ai_score", data.get("score")))
        except ValueError as e:
            logger.warning(f"Unusable LLM re-rank output: {e}")
            raise ModelError(f"Invalid LLM response: {e}", model_name=self.model, model_type="llm", cause=e) from e

        reason = str(data.get("reason") or "").strip() or "Analysis complete."
        return AIAnalysis(score=score, reason=reason)
