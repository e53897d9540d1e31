"""Candidate-to-job fit scoring and rewrite-aggressiveness calibration.

The model estimates a fit score; everything downstream of it is
deterministic:

* aggressiveness = 1 - fit_score * 0.9, so a perfect fit still gets a light
  touch-up (0.1) and a zero fit gets a full rewrite (1.0);
* a job is skipped when the score is below ``min_fit_score`` or when the
  default aggressiveness it implies exceeds ``max_aggressiveness``.
"""
from __future__ import annotations

import math

from applyhawk.ai_client import OpenRouterClient
from applyhawk.errors import ParseError
from applyhawk.formatting import format_experience, join_or, strip_html
from applyhawk.i18n import detect_language
from applyhawk.log import get_logger
from applyhawk.models import (
    AggressiveFitSettings,
    FitAssessment,
    FitDecision,
    Resume,
    SkipDecision,
    Vacancy,
    str_list,
)
from applyhawk.parsing import coerce_reply, parse_json_response
from applyhawk.prompts import PromptLoader

log = get_logger(__name__)

# Tunable floor: keeps a perfect-fit candidate at 0.1 aggressiveness.
AGGRESSIVENESS_FLOOR_COEFFICIENT = 0.9
DEFAULT_MIN_FIT_SCORE = 0.15
DEFAULT_MAX_AGGRESSIVENESS = 0.95
DESCRIPTION_LIMIT = 2000


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def calculate_aggressiveness(fit_score: float, override: float | None = None) -> float:
    """User override (clamped) wins; otherwise derive from the fit score."""
    if override is not None:
        return _clamp(float(override))
    # Half-up to two decimals, so 0.955 reads as 0.96.
    return math.floor((1 - fit_score * AGGRESSIVENESS_FLOOR_COEFFICIENT) * 100 + 0.5) / 100


def should_skip_vacancy(
    fit_score: float,
    min_fit_score: float = DEFAULT_MIN_FIT_SCORE,
    max_aggressiveness: float = DEFAULT_MAX_AGGRESSIVENESS,
) -> SkipDecision:
    """Recommend skipping a poor match. Both thresholds are exclusive.

    The aggressiveness check always uses the default formula: a user override
    changes how hard we rewrite, not whether the job is worth it.
    """
    if fit_score < min_fit_score:
        return SkipDecision(skip=True, reason=f"fitScore {fit_score:.2f} below minimum {min_fit_score}")

    aggressiveness = calculate_aggressiveness(fit_score, None)
    if aggressiveness > max_aggressiveness:
        return SkipDecision(
            skip=True,
            reason=f"required aggressiveness {aggressiveness:.2f} exceeds maximum {max_aggressiveness}",
        )

    return SkipDecision(skip=False)


def evaluate_fit(assessment: FitAssessment, policy: AggressiveFitSettings | None = None) -> FitDecision:
    policy = policy or AggressiveFitSettings()
    if policy.enabled:
        skip = should_skip_vacancy(assessment.fit_score, policy.min_fit_score, policy.max_aggressiveness)
    else:
        skip = SkipDecision(skip=False)
    aggressiveness = calculate_aggressiveness(assessment.fit_score, policy.aggressiveness_override)
    if skip.skip:
        log.info("Skip recommended: %s", skip.reason)
    return FitDecision(assessment=assessment, aggressiveness=aggressiveness, skip=skip)


def _fit_score(data: dict) -> float:
    raw = data.get("fitScore", data.get("fit_score"))
    try:
        return _clamp(float(raw))
    except (TypeError, ValueError):
        raise ParseError("Failed to parse fit assessment. Please try again.", content=str(data)) from None


def assess_fit(
    client: OpenRouterClient,
    loader: PromptLoader,
    vacancy: Vacancy,
    resume: Resume,
    language: str | None = None,
) -> FitAssessment:
    """Ask the model to score the match. ApiError propagates unchanged."""
    language = language or detect_language(vacancy.description)
    prompt = loader.build(
        "fit-assessment",
        {
            "vacancy": {
                "name": vacancy.name,
                "company": vacancy.company,
                "keySkills": join_or(vacancy.key_skills),
                "experience": vacancy.experience or "Not specified",
                "description": strip_html(vacancy.description)[:DESCRIPTION_LIMIT],
            },
            "resume": {
                "title": resume.title,
                "skills": join_or(resume.skills),
                "experience": format_experience(resume.experience),
            },
        },
        language,
    )
    response = client.call(prompt.messages(), temperature=prompt.temperature, max_tokens=prompt.max_tokens)
    data = parse_json_response(response.content, "fit assessment")

    assessment = coerce_reply(
        lambda d: FitAssessment(
            fit_score=_fit_score(d),
            strengths=str_list(d.get("strengths")),
            gaps=str_list(d.get("gaps")),
            recommendation=d.get("recommendation"),
        ),
        data,
        "fit assessment",
    )
    log.info("Fit for %s @ %s: %.2f", vacancy.name, vacancy.company, assessment.fit_score)
    return assessment
