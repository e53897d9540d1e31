"""Plain-text renderings of resumes and vacancy descriptions for prompts."""
from __future__ import annotations

import re

from bs4 import BeautifulSoup

from applyhawk.models import Experience

_WS_RE = re.compile(r"\s+")


def strip_html(html: str | None) -> str:
    """Visible text of an HTML fragment with entities decoded and whitespace collapsed."""
    if not html:
        return ""
    text = BeautifulSoup(html, "html.parser").get_text(" ", strip=True)
    return _WS_RE.sub(" ", text).strip()


def join_or(items: list[str] | None, fallback: str = "Not specified") -> str:
    return ", ".join(items) if items else fallback


def format_experience(experience: list[Experience] | None) -> str:
    """Bullet list used by the fit-assessment prompt."""
    if not experience:
        return "No experience specified"
    blocks: list[str] = []
    for exp in experience:
        period = f"{exp.start_date} - {exp.end_date or 'present'}"
        achievements = (
            f"\n  Achievements: {'; '.join(exp.achievements)}" if exp.achievements else ""
        )
        blocks.append(f"- {exp.position} at {exp.company} ({period})\n  {exp.description or ''}{achievements}")
    return "\n".join(blocks)


def format_experience_for_personalization(experience: list[Experience]) -> str:
    """Numbered blocks; the model rewrites them and must keep the numbering."""
    blocks: list[str] = []
    for i, exp in enumerate(experience, 1):
        achievements = f"+ {'; '.join(exp.achievements)}" if exp.achievements else ""
        blocks.append(
            f"[{i}] {exp.position} @ {exp.company}\n"
            f"{exp.start_date} — {exp.end_date or '...'}\n"
            f"---\n"
            f"{exp.description or ''}\n"
            f"{achievements}"
        )
    return "\n\n".join(blocks)


def format_experience_for_cover_letter(experience: list[Experience] | None) -> str:
    if not experience:
        return "No experience provided"
    return "\n\n".join(
        f"{exp.position} at {exp.company} ({exp.start_date} — {exp.end_date or 'present'})\n"
        f"{exp.description or ''}"
        for exp in experience
    )
