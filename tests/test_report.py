from applyhawk.errors import ApiError
from applyhawk.models import CoverLetter, Experience, FitAssessment, FitDecision, PersonalizedResume, SkipDecision
from applyhawk.report import build_application_report, write_application_report
from applyhawk.session import ApplyResult, State


def _result():
    fit = FitAssessment(fit_score=0.2, strengths=["Go"], gaps=["Kafka", "Scala"], recommendation="Stretch role.")
    return ApplyResult(
        state=State.READY_TO_SUBMIT,
        fit=fit,
        decision=FitDecision(
            assessment=fit,
            aggressiveness=0.82,
            skip=SkipDecision(skip=True, reason="required aggressiveness 0.82 exceeds maximum 0.8"),
        ),
        resume=PersonalizedResume(
            title="Payments Engineer",
            summary="Ledger specialist.",
            experience=[Experience(company="Globex", position="Lead", start_date="2021",
                                   description="Ledgers.", achievements=["Shipped v2"])],
            key_skills=["Go", "Kafka"],
        ),
        cover_letter=CoverLetter(text="Dear Acme team, ..."),
    )


def test_report_sections(vacancy):
    report = build_application_report(vacancy, _result())

    assert report.startswith("# Staff Backend Engineer @ Acme")
    assert "- **Link:** https://acme.example/jobs/42" in report
    assert "- **Fit score:** 20%" in report
    assert "- **Aggressiveness:** 0.82" in report
    assert "- **Skip recommended:** required aggressiveness 0.82 exceeds maximum 0.8" in report
    assert "- **Gaps:** Kafka, Scala" in report
    assert "### Lead @ Globex" in report
    assert "- Shipped v2" in report
    assert "**Key skills:** Go, Kafka" in report
    assert "## Cover letter" in report
    assert "Dear Acme team, ..." in report


def test_report_with_error_only(vacancy):
    report = build_application_report(vacancy, ApplyResult(state=State.FAILED, error=ApiError("Upstream down", 502)))
    assert "## Fit" not in report
    assert "Upstream down (HTTP 502)" in report


def test_write_application_report(tmp_path, vacancy):
    path = write_application_report("# hello", vacancy, reports_dir=tmp_path / "reports")
    assert path.parent == tmp_path / "reports"
    assert path.name.startswith("apply_")
    assert path.name.endswith("_Acme.md")
    assert path.read_text(encoding="utf-8") == "# hello"
