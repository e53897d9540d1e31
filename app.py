"""Streamlit UI for ApplyHawk."""
from __future__ import annotations

import json
import sys
from pathlib import Path

import streamlit as st

ROOT = Path(__file__).resolve().parent
sys.path.insert(0, str(ROOT))

from applyhawk.ai_client import OpenRouterClient, list_models
from applyhawk.config import (
    DEFAULT_MODEL,
    REPORTS_DIR,
    RESUME_DIR,
    default_storage,
    ensure_dirs,
    get_resume_path,
    resolve_api_key,
    resolve_model,
)
from applyhawk.errors import ApplyHawkError
from applyhawk.log import get_logger
from applyhawk.models import Resume
from applyhawk.personalizer import generate_resume_title, parse_vacancy
from applyhawk.prompts import default_loader
from applyhawk.report import build_application_report, write_application_report
from applyhawk.resume_parser import import_resume
from applyhawk.session import ApplySession, State, SubmitResult
from applyhawk.storage import (
    get_base_resume,
    get_daily_counter,
    get_remaining_applications,
    get_settings,
    save_base_resume,
    save_settings,
)

log = get_logger(__name__)

_GLASS_CSS = """
<style>
[data-testid="stAppViewContainer"] {
    background: linear-gradient(135deg, #e8eaf6 0%, #f3e5f5 40%, #e0f2f1 100%);
}
[data-testid="stSidebar"] {
    background: rgba(255,255,255,0.55);
    backdrop-filter: blur(16px);
    border-right: 1px solid rgba(255,255,255,0.3);
}
.block-container {
    padding-top: 2rem;
}
[data-testid="stMetric"] {
    background: rgba(255,255,255,0.6);
    padding: 0.75rem 1rem;
    border-radius: 12px;
    border: 1px solid rgba(255,255,255,0.4);
    box-shadow: 0 4px 16px rgba(0,0,0,0.06);
}
[data-testid="stForm"],
[data-testid="stExpander"] {
    background: rgba(255,255,255,0.5);
    border-radius: 12px;
    border: 1px solid rgba(255,255,255,0.35);
}
.stButton > button[kind="primary"] {
    border-radius: 8px;
    font-weight: 600;
}
h1, h2, h3 {
    color: #1a1a2e;
}
.skip-warning {
    padding: 0.75rem 1rem; background: rgba(231,76,60,0.08);
    border-left: 3px solid #e74c3c; border-radius: 6px;
}
</style>
"""

# ── Helpers ──────────────────────────────────────────────────────────────


@st.cache_resource
def _storage():
    return default_storage()


@st.cache_resource
def _loader():
    return default_loader()


@st.cache_data(ttl=3600, show_spinner=False)
def _models(api_key: str) -> list[tuple[str, str]]:
    return [(m.id, m.name) for m in list_models(api_key or None)]


def _client() -> OpenRouterClient | None:
    settings = get_settings(_storage())
    api_key = resolve_api_key(settings)
    if not api_key:
        return None
    return OpenRouterClient(api_key=api_key, model=resolve_model(settings))


def _check(label: str, ok: bool) -> str:
    icon = "✅" if ok else "⬜"
    return f"{icon}  {label}"


def _status() -> dict[str, bool]:
    resume = get_base_resume(_storage())
    return {
        "api_key": bool(resolve_api_key(get_settings(_storage()))),
        "resume": resume is not None and bool(resume.experience),
    }


def _record_locally(vacancy_id: str, resume_hash: str, cover_letter: str) -> SubmitResult:
    log.info("Marked %s as applied (resume %s)", vacancy_id or "<no id>", resume_hash)
    return SubmitResult(success=True)


# ── Page: Resume ─────────────────────────────────────────────────────────


def page_resume() -> None:
    st.header("Base Resume")
    st.write("Every application starts from this resume. Import a file or edit the JSON directly.")

    client = _client()
    uploaded = st.file_uploader("Import resume (PDF, DOCX, or TXT)", type=["pdf", "docx", "txt"])
    if uploaded:
        if client is None:
            st.error("Add your OpenRouter API key in **Settings** first.")
        else:
            ensure_dirs()
            dest = RESUME_DIR / uploaded.name
            dest.write_bytes(uploaded.getvalue())
            with st.spinner("Analyzing your resume…"):
                try:
                    resume = import_resume(dest, client, _loader())
                    save_base_resume(_storage(), resume)
                    st.success(f"Imported {len(resume.experience)} positions from `{uploaded.name}`")
                except ApplyHawkError as exc:
                    st.error(f"Import failed: {exc}")

    existing = get_resume_path()
    if existing and not uploaded:
        st.caption(f"Last imported file: `{existing.name}`")

    resume = get_base_resume(_storage()) or Resume()
    c1, c2, c3 = st.columns(3)
    c1.metric("Name", resume.full_name or "—")
    c2.metric("Positions", len(resume.experience))
    c3.metric("Skills", len(resume.skills))

    with st.form("resume_json"):
        raw = st.text_area(
            "Resume JSON",
            value=json.dumps(resume.to_dict(), ensure_ascii=False, indent=2),
            height=420,
        )
        if st.form_submit_button("Save Resume", type="primary", use_container_width=True):
            try:
                saved = save_base_resume(_storage(), json.loads(raw))
                st.success(f"Saved ({len(saved.experience)} positions).")
            except json.JSONDecodeError as exc:
                st.error(f"Invalid JSON: {exc}")
            except ApplyHawkError as exc:
                st.error(str(exc))


# ── Page: Settings ───────────────────────────────────────────────────────


def page_settings() -> None:
    st.header("Settings")
    settings = get_settings(_storage())

    tab_ai, tab_fit, tab_contacts = st.tabs(["AI Model", "Aggressive Fit", "Contacts"])

    with tab_ai:
        with st.form("ai_settings"):
            api_key = st.text_input(
                "OpenRouter API key",
                value=settings.openrouter_api_key,
                type="password",
                placeholder="sk-or-...",
                help="Falls back to OPENROUTER_API_KEY from .env when empty.",
            )
            options: list[tuple[str, str]] = []
            key = resolve_api_key(settings)
            if key:
                try:
                    options = _models(key)
                except (ApplyHawkError, OSError) as exc:  # requests errors are OSErrors
                    st.warning(f"Could not load the model list: {exc}")
            ids = [mid for mid, _ in options] or [settings.preferred_model or DEFAULT_MODEL]
            if settings.preferred_model and settings.preferred_model not in ids:
                ids.insert(0, settings.preferred_model)
            names = dict(options)
            model = st.selectbox(
                "Model",
                ids,
                index=ids.index(settings.preferred_model) if settings.preferred_model in ids else 0,
                format_func=lambda mid: names.get(mid, mid),
            )
            if st.form_submit_button("Save", type="primary", use_container_width=True):
                save_settings(_storage(), {"openrouter_api_key": api_key, "preferred_model": model})
                _models.clear()
                st.success("Saved.")

    with tab_fit:
        policy = settings.aggressive_fit
        with st.form("fit_settings"):
            enabled = st.checkbox("Warn before applying to poor matches", value=policy.enabled)
            min_fit = st.slider("Minimum fit score", 0.0, 1.0, float(policy.min_fit_score), 0.01)
            max_aggr = st.slider("Maximum aggressiveness", 0.0, 1.0, float(policy.max_aggressiveness), 0.01)
            use_override = st.checkbox(
                "Fixed aggressiveness",
                value=policy.aggressiveness_override is not None,
                help="Ignore the fit score and always rewrite this hard.",
            )
            override = st.slider(
                "Aggressiveness override",
                0.0, 1.0,
                float(policy.aggressiveness_override if policy.aggressiveness_override is not None else 0.5),
                0.05,
            )
            if st.form_submit_button("Save", type="primary", use_container_width=True):
                save_settings(_storage(), {
                    "aggressive_fit": {
                        "enabled": enabled,
                        "min_fit_score": min_fit,
                        "max_aggressiveness": max_aggr,
                        "aggressiveness_override": override if use_override else None,
                    },
                })
                st.success("Saved.")

    with tab_contacts:
        with st.form("contact_settings"):
            email = st.text_input("Contact email", value=settings.contact_email)
            telegram = st.text_input("Telegram", value=settings.contact_telegram)
            salary = st.text_input("Salary expectation", value=settings.salary_expectation, placeholder="negotiable")
            if st.form_submit_button("Save", type="primary", use_container_width=True):
                save_settings(_storage(), {
                    "contact_email": email,
                    "contact_telegram": telegram,
                    "salary_expectation": salary,
                })
                st.success("Saved.")


# ── Page: Apply ──────────────────────────────────────────────────────────


def _render_result(session: ApplySession) -> None:
    result = session.result
    step_error = st.session_state.pop("step_error", None)
    if step_error and result.state != State.FAILED:
        st.error(step_error)
    if result.fit is not None:
        c1, c2, c3 = st.columns(3)
        c1.metric("Fit score", f"{result.fit.fit_score:.0%}")
        if result.decision is not None:
            c2.metric("Aggressiveness", f"{result.decision.aggressiveness:.2f}")
        c3.metric("State", result.state.value.replace("_", " "))
        with st.expander("Strengths & gaps"):
            st.markdown("**Strengths:** " + (", ".join(result.fit.strengths) or "—"))
            st.markdown("**Gaps:** " + (", ".join(result.fit.gaps) or "—"))
            if result.fit.recommendation:
                st.caption(result.fit.recommendation)

    if result.state == State.SKIP_WARNING:
        st.markdown(
            f'<div class="skip-warning">Skipping is recommended: {result.decision.skip.reason}</div>',
            unsafe_allow_html=True,
        )
        c1, c2 = st.columns(2)
        if c1.button("Proceed anyway", type="primary", use_container_width=True):
            _run_step(session.proceed_anyway, "Generating…")
            st.rerun()
        if c2.button("Skip this job", use_container_width=True):
            session.cancel()
            del st.session_state["apply_session"]
            st.rerun()
        return

    if result.resume is not None:
        st.subheader(result.resume.title)
        short = st.session_state.get("short_title")
        if short:
            st.caption(f"Job-board title: **{short}**")
        elif st.button("Suggest job-board title"):
            with st.spinner("Thinking…"):
                try:
                    st.session_state["short_title"] = generate_resume_title(
                        session.client, session.loader, session.vacancy, result.resume, session.language,
                    )
                    st.rerun()
                except ApplyHawkError as exc:
                    st.error(str(exc))
        if result.resume.summary:
            st.write(result.resume.summary)
        if result.resume.key_skills:
            st.caption(", ".join(result.resume.key_skills))
        for exp in result.resume.experience:
            with st.expander(f"{exp.position} @ {exp.company}"):
                st.write(exp.description)
                for item in exp.achievements:
                    st.markdown(f"- {item}")

    if result.cover_letter is not None:
        st.subheader("Cover letter")
        st.text_area("Cover letter", value=result.cover_letter.text, height=280, label_visibility="collapsed")

    if result.state in (State.READY_TO_SUBMIT, State.SUBMITTED):
        report = build_application_report(session.vacancy, result)
        c1, c2, c3 = st.columns(3)
        c1.download_button(
            "Download report", report, file_name=f"apply_{session.vacancy.company or 'job'}.md",
            use_container_width=True,
        )
        if c2.button("Save to reports", use_container_width=True):
            path = write_application_report(report, session.vacancy)
            st.info(f"Report saved → `{path}`")
        if result.state == State.READY_TO_SUBMIT and c3.button("Mark as applied", use_container_width=True):
            _run_step(lambda: session.submit(_record_locally), "Saving…")
            st.rerun()

    if result.state == State.FAILED:
        st.error(str(result.error))
        if st.button("Retry", type="primary"):
            _run_step(session.retry, "Retrying…")
            st.rerun()


def _run_step(step, label: str) -> None:
    """Run a session step; its error is shown after the rerun."""
    with st.spinner(label):
        try:
            step()
        except Exception as exc:
            log.warning("Apply step failed: %s", exc)
            st.session_state["step_error"] = str(exc)


def page_apply() -> None:
    st.header("Apply")
    status = _status()
    if not status["api_key"]:
        st.warning("OpenRouter API key not set. Add it in **Settings** first.")
        return
    if not status["resume"]:
        st.warning("Base resume is empty. Import or fill it in on the **Resume** page first.")
        return

    storage = _storage()
    counter = get_daily_counter(storage)
    c1, c2 = st.columns(2)
    c1.metric("Applied today", counter["count"])
    c2.metric("Remaining today", get_remaining_applications(storage))

    with st.form("vacancy_form"):
        raw = st.text_area("Paste the full job description", height=240)
        url = st.text_input("Job URL (optional)")
        go = st.form_submit_button("Analyze & Generate", type="primary", use_container_width=True)

    if go:
        client = _client()
        with st.status("Working…", expanded=True) as sw:
            try:
                sw.write("Parsing the job description…")
                vacancy = parse_vacancy(client, _loader(), raw)
                vacancy.url = url or vacancy.url
                session = ApplySession(client, _loader(), storage, vacancy)
                st.session_state["apply_session"] = session
                st.session_state.pop("short_title", None)
                sw.write("Scoring fit and generating…")
                session.start()
                sw.update(label="Done", state="complete")
            except Exception as exc:
                sw.update(label="Failed", state="error")
                st.error(str(exc))

    session = st.session_state.get("apply_session")
    if session is not None:
        st.divider()
        st.markdown(f"### {session.vacancy.name} @ {session.vacancy.company}")
        _render_result(session)


# ── Page: Reports ────────────────────────────────────────────────────────


def page_reports() -> None:
    st.header("Reports")
    ensure_dirs()
    reports = sorted(REPORTS_DIR.glob("apply_*.md"), reverse=True)
    if not reports:
        st.info("No saved reports yet.")
        return
    selected = st.selectbox("Select report", reports, format_func=lambda p: p.stem.replace("apply_", ""))
    if selected:
        st.markdown(selected.read_text(encoding="utf-8"))


# ── Main ─────────────────────────────────────────────────────────────────


def _inject_css() -> None:
    st.markdown(_GLASS_CSS, unsafe_allow_html=True)


def _sidebar_status() -> None:
    with st.sidebar:
        st.divider()
        s = _status()
        st.markdown("**Status**")
        st.markdown(_check("OpenRouter API key", s["api_key"]))
        st.markdown(_check("Base resume", s["resume"]))
        st.caption(f"Model: `{resolve_model(get_settings(_storage()))}`")


def _wrap(page):
    def run() -> None:
        _inject_css()
        _sidebar_status()
        page()

    run.__name__ = page.__name__
    return run


pages = [
    st.Page(_wrap(page_apply), title="Apply", icon="🚀", url_path="apply", default=True),
    st.Page(_wrap(page_resume), title="Resume", icon="📄", url_path="resume"),
    st.Page(_wrap(page_settings), title="Settings", icon="⚙️", url_path="settings"),
    st.Page(_wrap(page_reports), title="Reports", icon="📋", url_path="reports"),
]

nav = st.navigation(pages)
nav.run()
