"""Resume rewriting, cover letters, resume titles and vacancy parsing."""
from __future__ import annotations

import json

from applyhawk.ai_client import OpenRouterClient
from applyhawk.errors import ValidationError
from applyhawk.fit import calculate_aggressiveness
from applyhawk.formatting import (
    format_experience,
    format_experience_for_cover_letter,
    format_experience_for_personalization,
    join_or,
    strip_html,
)
from applyhawk.i18n import detect_language
from applyhawk.log import get_logger
from applyhawk.models import (
    CoverLetter,
    Experience,
    FitAssessment,
    PersonalizedResume,
    Resume,
    Settings,
    Vacancy,
    str_list,
)
from applyhawk.parsing import clean_title, coerce_reply, parse_cover_letter, parse_json_response
from applyhawk.prompts import PromptLoader

log = get_logger(__name__)

DEFAULT_AGGRESSIVENESS = 0.5
MIN_VACANCY_TEXT = 20


def _vacancy_vars(vacancy: Vacancy, description_limit: int) -> dict[str, str]:
    return {
        "name": vacancy.name,
        "company": vacancy.company,
        "keySkills": join_or(vacancy.key_skills),
        "experience": vacancy.experience or "Not specified",
        "description": strip_html(vacancy.description)[:description_limit],
    }


def _fit_section(fit: FitAssessment | None, strengths_first: bool = False) -> str:
    if fit is None:
        return ""
    gaps = f"Gaps: {join_or(fit.gaps, 'None identified')}"
    strengths = f"Strengths: {join_or(fit.strengths, 'None identified')}"
    body = [strengths, gaps] if strengths_first else [gaps, strengths]
    return "\nFIT ASSESSMENT:\nfitScore: {:.2f}\n{}".format(fit.fit_score, "\n".join(body))


def _focus_instructions(fit: FitAssessment | None) -> str:
    if fit is None:
        return ""
    return (
        " Focus on:\n"
        f"- Highlighting: {join_or(fit.strengths, 'relevant experience')}\n"
        f"- Addressing gaps: {join_or(fit.gaps, 'none')}"
    )


def _call_with(client: OpenRouterClient, loader: PromptLoader, name: str, variables: dict, language: str):
    prompt = loader.build(name, variables, language)
    return client.call(prompt.messages(), temperature=prompt.temperature, max_tokens=prompt.max_tokens)


def generate_personalized_resume(
    client: OpenRouterClient,
    loader: PromptLoader,
    base_resume: Resume,
    vacancy: Vacancy,
    fit_assessment: FitAssessment | None = None,
    aggressiveness: float | None = None,
    settings: Settings | None = None,
    language: str | None = None,
) -> PersonalizedResume:
    if base_resume is None or not base_resume.experience:
        raise ValidationError("Base resume with experience not configured.")

    if aggressiveness is None:
        if fit_assessment is not None:
            override = settings.aggressive_fit.aggressiveness_override if settings else None
            aggressiveness = calculate_aggressiveness(fit_assessment.fit_score, override)
        else:
            aggressiveness = DEFAULT_AGGRESSIVENESS

    response = _call_with(
        client, loader, "resume-personalization",
        {
            "vacancy": _vacancy_vars(vacancy, 2500),
            "resume": {
                "fullName": base_resume.full_name,
                "title": base_resume.title,
                "skills": join_or(base_resume.skills),
                "experienceFormatted": format_experience_for_personalization(base_resume.experience),
            },
            "fitSection": _fit_section(fit_assessment),
            "aggressiveness": f"{aggressiveness:.2f}",
            "focusInstructions": _focus_instructions(fit_assessment),
        },
        language or detect_language(vacancy.description),
    )
    data = parse_json_response(response.content, "generated resume")

    personalized = coerce_reply(
        lambda d: PersonalizedResume(
            title=d.get("title") or base_resume.title,
            summary=d.get("summary") or None,
            experience=[Experience.from_dict(e) for e in d.get("experience") or [] if isinstance(e, dict)],
            key_skills=str_list(d.get("keySkills") or d.get("key_skills")),
            applied_aggressiveness=aggressiveness,
            original_fit_score=fit_assessment.fit_score if fit_assessment else None,
        ),
        data,
        "generated resume",
    )
    log.info(
        "Personalized resume for %s: %d positions, %d skills, aggressiveness %.2f",
        vacancy.name, len(personalized.experience), len(personalized.key_skills), aggressiveness,
    )
    return personalized


def generate_cover_letter(
    client: OpenRouterClient,
    loader: PromptLoader,
    vacancy: Vacancy,
    base_resume: Resume,
    personalized: PersonalizedResume | None = None,
    fit_assessment: FitAssessment | None = None,
    aggressiveness: float = DEFAULT_AGGRESSIVENESS,
    settings: Settings | None = None,
    language: str | None = None,
) -> CoverLetter:
    """Write the letter from the personalized resume when one is available."""
    settings = settings or Settings()
    contacts = ", ".join(
        c for c in (
            settings.contact_telegram or base_resume.contacts.telegram,
            settings.contact_email or base_resume.contacts.email,
        ) if c
    )

    if personalized is not None and personalized.experience:
        experience_text = format_experience_for_cover_letter(personalized.experience)
    else:
        experience_text = format_experience(base_resume.experience)
    skills = (personalized.key_skills if personalized and personalized.key_skills else base_resume.skills) or []
    title = (personalized.title if personalized else "") or base_resume.title or ""

    strategy = (
        "\nSTRATEGY:\n"
        "- Present candidate as ideal fit for this role\n"
        f"- Mention experience with key required skills: {join_or(vacancy.key_skills[:4], 'required technologies')}\n"
        "- Be confident and specific"
    )
    strengths_hint = f" from: {', '.join(fit_assessment.strengths)}" if fit_assessment and fit_assessment.strengths else ""

    response = _call_with(
        client, loader, "cover-letter",
        {
            "vacancy": {
                "name": vacancy.name,
                "company": vacancy.company,
                "description": strip_html(vacancy.description)[:2000],
                "keySkills": join_or(vacancy.key_skills),
            },
            "resume": {
                "fullName": base_resume.full_name,
                "title": title,
                "experience": experience_text,
                "skills": join_or(skills),
            },
            "personalized": {
                "title": title,
                "keySkills": json.dumps(skills, ensure_ascii=False),
                "experienceFormatted": experience_text,
            },
            "aggressiveness": f"{aggressiveness:.2f}",
            "fitSection": _fit_section(fit_assessment, strengths_first=True),
            "contacts": contacts,
            "salaryExpectation": settings.salary_expectation or "negotiable",
            "strategySection": strategy,
            "strengthsHint": strengths_hint,
        },
        language or detect_language(vacancy.description),
    )
    text, extraction = parse_cover_letter(response.content)
    log.info("Cover letter for %s @ %s: %d chars", vacancy.name, vacancy.company, len(text))
    return CoverLetter(text=text, extraction=extraction)


def generate_resume_title(
    client: OpenRouterClient,
    loader: PromptLoader,
    vacancy: Vacancy,
    personalized: PersonalizedResume,
    language: str | None = None,
) -> str:
    recent = personalized.experience[0] if personalized.experience else None
    response = _call_with(
        client, loader, "resume-title",
        {
            "vacancy": {"name": vacancy.name, "company": vacancy.company},
            "resume": {
                "keySkills": join_or(personalized.key_skills[:5]),
                "recentPosition": recent.position if recent else "Not specified",
                "recentCompany": recent.company if recent else "",
            },
        },
        language or detect_language(vacancy.description),
    )
    return clean_title(response.content)


def parse_vacancy(
    client: OpenRouterClient,
    loader: PromptLoader,
    raw_text: str,
    language: str | None = None,
) -> Vacancy:
    """Turn a pasted job description into a structured Vacancy."""
    if not raw_text or len(raw_text.strip()) < MIN_VACANCY_TEXT:
        raise ValidationError("Job description is too short. Please paste a complete job description.")

    response = _call_with(
        client, loader, "universal-vacancy-parse",
        {"rawText": raw_text[:8000]},
        language or detect_language(raw_text),
    )
    data = parse_json_response(response.content, "parsed vacancy")
    vacancy = coerce_reply(Vacancy.from_dict, data, "parsed vacancy")
    vacancy.name = vacancy.name or "Job Position"
    vacancy.company = vacancy.company or "Not specified"
    vacancy.description = vacancy.description or raw_text[:2000]
    vacancy.experience = vacancy.experience or "Not specified"
    vacancy.salary = vacancy.salary or None
    return vacancy
