"""Markdown export of a finished apply session."""
from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from applyhawk.config import REPORTS_DIR
from applyhawk.log import get_logger
from applyhawk.models import Experience, Vacancy
from applyhawk.session import ApplyResult

log = get_logger(__name__)


def _slug(text: str, limit: int = 40) -> str:
    return "".join(c if c.isalnum() or c in "-_" else "_" for c in text.strip())[:limit] or "vacancy"


def _experience_lines(experience: list[Experience]) -> list[str]:
    lines: list[str] = []
    for exp in experience:
        lines.append(f"### {exp.position} @ {exp.company}")
        lines.append(f"_{exp.start_date} — {exp.end_date or 'present'}_")
        lines.append("")
        if exp.description:
            lines.append(exp.description)
            lines.append("")
        for item in exp.achievements:
            lines.append(f"- {item}")
        if exp.achievements:
            lines.append("")
    return lines


def build_application_report(vacancy: Vacancy, result: ApplyResult) -> str:
    date = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M")
    lines: list[str] = [f"# {vacancy.name} @ {vacancy.company or 'Unknown company'}", "", f"_Generated {date} UTC_", ""]
    if vacancy.url:
        lines += [f"- **Link:** {vacancy.url}"]
    if vacancy.salary:
        lines += [f"- **Salary:** {vacancy.salary}"]

    if result.fit is not None:
        lines += ["", "## Fit", "", f"- **Fit score:** {result.fit.fit_score:.0%}"]
        if result.decision is not None:
            lines.append(f"- **Aggressiveness:** {result.decision.aggressiveness:.2f}")
            if result.decision.skip.skip:
                lines.append(f"- **Skip recommended:** {result.decision.skip.reason}")
        if result.fit.strengths:
            lines.append(f"- **Strengths:** {', '.join(result.fit.strengths)}")
        if result.fit.gaps:
            lines.append(f"- **Gaps:** {', '.join(result.fit.gaps)}")
        if result.fit.recommendation:
            lines.append(f"- **Recommendation:** {result.fit.recommendation}")

    if result.resume is not None:
        lines += ["", "## Personalized resume", "", f"**{result.resume.title}**", ""]
        if result.resume.summary:
            lines += [result.resume.summary, ""]
        if result.resume.key_skills:
            lines += [f"**Key skills:** {', '.join(result.resume.key_skills)}", ""]
        lines += _experience_lines(result.resume.experience)

    if result.cover_letter is not None:
        lines += ["", "## Cover letter", "", result.cover_letter.text, ""]

    if result.error is not None:
        lines += ["", "## Error", "", str(result.error), ""]

    return "\n".join(lines)


def write_application_report(content: str, vacancy: Vacancy, reports_dir: Path | None = None) -> Path:
    reports_dir = reports_dir or REPORTS_DIR
    reports_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d_%H%M%S")
    path = reports_dir / f"apply_{stamp}_{_slug(vacancy.company or vacancy.name)}.md"
    path.write_text(content, encoding="utf-8")
    log.info("Report written → %s", path)
    return path
