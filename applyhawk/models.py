"""Data models for resumes, vacancies and the apply pipeline.

``from_dict`` accepts both the snake_case keys written by ``to_dict`` and the
camelCase keys that prompt templates ask the model to return.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


def _pick(data: dict, *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default


def str_list(value: Any) -> list[str]:
    """List of non-blank strings from a list or a comma-separated string."""
    if not value:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if not isinstance(value, (list, tuple)):
        raise TypeError(f"expected a list of strings, got {type(value).__name__}")
    return [str(v) for v in value if v is not None and str(v).strip()]


@dataclass
class ContactInfo:
    email: str = ""
    phone: str = ""
    telegram: str = ""
    linkedin: str = ""

    @classmethod
    def from_dict(cls, data: dict | None) -> ContactInfo:
        data = data or {}
        return cls(
            email=data.get("email") or "",
            phone=data.get("phone") or "",
            telegram=data.get("telegram") or "",
            linkedin=data.get("linkedin") or "",
        )


@dataclass
class Experience:
    company: str
    position: str
    start_date: str = ""
    end_date: str | None = None
    description: str = ""
    achievements: list[str] = field(default_factory=list)

    @property
    def is_current(self) -> bool:
        return not self.end_date or self.end_date.lower() == "present"

    @classmethod
    def from_dict(cls, data: dict) -> Experience:
        return cls(
            company=_pick(data, "company", "companyName", "company_name", default=""),
            position=_pick(data, "position", "title", default=""),
            start_date=str(_pick(data, "start_date", "startDate", default="")),
            end_date=_pick(data, "end_date", "endDate"),
            description=_pick(data, "description", default=""),
            achievements=str_list(data.get("achievements")),
        )


@dataclass
class Education:
    institution: str = ""
    degree: str = ""
    faculty: str = ""
    year: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> Education:
        return cls(
            institution=_pick(data, "institution", "name", default=""),
            degree=_pick(data, "degree", default=""),
            faculty=_pick(data, "faculty", default=""),
            year=str(_pick(data, "year", "graduationYear", "graduation_year", default="")),
        )


@dataclass
class Resume:
    full_name: str = ""
    title: str = ""
    summary: str = ""
    experience: list[Experience] = field(default_factory=list)
    education: list[Education] = field(default_factory=list)
    skills: list[str] = field(default_factory=list)
    contacts: ContactInfo = field(default_factory=ContactInfo)

    @classmethod
    def from_dict(cls, data: dict | None) -> Resume:
        data = data or {}
        return cls(
            full_name=_pick(data, "full_name", "fullName", default=""),
            title=_pick(data, "title", default=""),
            summary=_pick(data, "summary", default=""),
            experience=[Experience.from_dict(e) for e in data.get("experience") or []],
            education=[Education.from_dict(e) for e in data.get("education") or []],
            skills=str_list(data.get("skills")),
            contacts=ContactInfo.from_dict(data.get("contacts")),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Vacancy:
    name: str
    company: str = ""
    description: str = ""
    key_skills: list[str] = field(default_factory=list)
    experience: str = ""
    salary: str | None = None
    url: str = ""
    id: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> Vacancy:
        return cls(
            name=_pick(data, "name", "title", default=""),
            company=_pick(data, "company", default=""),
            description=_pick(data, "description", default=""),
            key_skills=str_list(_pick(data, "key_skills", "keySkills", "skills")),
            experience=_pick(data, "experience", default=""),
            salary=_pick(data, "salary"),
            url=_pick(data, "url", default=""),
            id=str(_pick(data, "id", default="")),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class FitAssessment:
    fit_score: float
    strengths: list[str] = field(default_factory=list)
    gaps: list[str] = field(default_factory=list)
    recommendation: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SkipDecision:
    skip: bool
    reason: str | None = None


@dataclass
class FitDecision:
    """Deterministic outcome derived from a FitAssessment and the user's policy."""

    assessment: FitAssessment
    aggressiveness: float
    skip: SkipDecision


@dataclass
class PersonalizedResume:
    title: str
    summary: str | None = None
    experience: list[Experience] = field(default_factory=list)
    key_skills: list[str] = field(default_factory=list)
    applied_aggressiveness: float = 0.5
    original_fit_score: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CoverLetter:
    text: str
    extraction: Any = None


@dataclass
class AggressiveFitSettings:
    enabled: bool = True
    min_fit_score: float = 0.15
    max_aggressiveness: float = 0.95
    aggressiveness_override: float | None = None

    @classmethod
    def from_dict(cls, data: dict | None) -> AggressiveFitSettings:
        data = data or {}
        defaults = cls()
        return cls(
            enabled=bool(_pick(data, "enabled", default=defaults.enabled)),
            min_fit_score=float(_pick(data, "min_fit_score", "minFitScore", default=defaults.min_fit_score)),
            max_aggressiveness=float(
                _pick(data, "max_aggressiveness", "maxAggressiveness", default=defaults.max_aggressiveness)
            ),
            aggressiveness_override=_pick(data, "aggressiveness_override", "aggressivenessOverride"),
        )


@dataclass
class Settings:
    openrouter_api_key: str = ""
    preferred_model: str = "anthropic/claude-sonnet-4"
    default_hh_resume_id: str = ""
    contact_email: str = ""
    contact_telegram: str = ""
    salary_expectation: str = ""
    aggressive_fit: AggressiveFitSettings = field(default_factory=AggressiveFitSettings)

    @classmethod
    def from_dict(cls, data: dict | None) -> Settings:
        data = data or {}
        defaults = cls()
        return cls(
            openrouter_api_key=_pick(data, "openrouter_api_key", "openRouterApiKey", default=""),
            preferred_model=_pick(data, "preferred_model", "preferredModel", default=defaults.preferred_model),
            default_hh_resume_id=_pick(data, "default_hh_resume_id", "defaultHHResumeId", default=""),
            contact_email=_pick(data, "contact_email", "contactEmail", default=""),
            contact_telegram=_pick(data, "contact_telegram", "contactTelegram", default=""),
            salary_expectation=_pick(data, "salary_expectation", "salaryExpectation", default=""),
            aggressive_fit=AggressiveFitSettings.from_dict(_pick(data, "aggressive_fit", "aggressiveFit")),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class JobPageDetectionResult:
    is_job_page: bool
    platform: str | None
    confidence: float
    method: str
    job_data: dict[str, Any] | None = None
    matched_keywords: list[str] = field(default_factory=list)
