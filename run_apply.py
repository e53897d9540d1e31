#!/usr/bin/env python3
"""Command-line entry point for ApplyHawk.

Usage:
  python run_apply.py detect https://example.com/careers/eng/backend
  python run_apply.py apply --vacancy-file job.txt [--yes] [--mark-applied]
  python run_apply.py import-resume resume/cv.pdf
  python run_apply.py models
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from applyhawk.ai_client import OpenRouterClient, list_models
from applyhawk.config import default_storage, ensure_dirs, resolve_api_key, resolve_model
from applyhawk.detector import detect, extract_job_content, fetch_page
from applyhawk.errors import ApplyHawkError
from applyhawk.log import get_logger
from applyhawk.models import Vacancy
from applyhawk.personalizer import parse_vacancy
from applyhawk.prompts import default_loader
from applyhawk.report import build_application_report, write_application_report
from applyhawk.resume_parser import import_resume
from applyhawk.session import ApplySession, State, SubmitResult
from applyhawk.storage import (
    get_remaining_applications,
    get_settings,
    is_vacancy_applied,
    save_base_resume,
)

log = get_logger(__name__)


def _client(storage) -> OpenRouterClient:
    settings = get_settings(storage)
    api_key = resolve_api_key(settings)
    if not api_key:
        raise ApplyHawkError("OpenRouter API key not configured. Set OPENROUTER_API_KEY in .env.")
    return OpenRouterClient(api_key=api_key, model=resolve_model(settings))


def _load_vacancy(path: Path, client: OpenRouterClient, loader) -> Vacancy:
    """A .json file is taken as a structured vacancy; anything else as pasted text."""
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return Vacancy.from_dict(json.loads(text))
    log.info("Parsing vacancy text from %s", path.name)
    return parse_vacancy(client, loader, text)


def _record_locally(vacancy_id: str, resume_hash: str, cover_letter: str) -> SubmitResult:
    # Applied by hand on the job site; only the local history is updated.
    log.info("Recording application %s (resume %s)", vacancy_id or "<no id>", resume_hash)
    return SubmitResult(success=True)


def cmd_detect(args: argparse.Namespace) -> int:
    html = None if args.no_fetch else fetch_page(args.url)
    result = detect(args.url, html)
    log.info(
        "is_job_page=%s platform=%s confidence=%.2f method=%s",
        result.is_job_page, result.platform, result.confidence, result.method,
    )
    if result.matched_keywords:
        log.info("Matched: %s", ", ".join(result.matched_keywords))
    if result.job_data:
        log.info("Job data: %s", json.dumps(result.job_data, ensure_ascii=False))
    if result.is_job_page and html and args.content:
        page = extract_job_content(args.url, html)
        print(page.title)
        print(page.content)
    return 0 if result.is_job_page else 1


def cmd_apply(args: argparse.Namespace) -> int:
    storage = default_storage()
    client = _client(storage)
    loader = default_loader()
    vacancy = _load_vacancy(Path(args.vacancy_file), client, loader)

    if vacancy.id and is_vacancy_applied(storage, vacancy.id):
        log.warning("Already applied to %s (%s)", vacancy.name, vacancy.id)
    log.info("Applications left today: %d", get_remaining_applications(storage))

    session = ApplySession(client, loader, storage, vacancy)
    result = session.start()
    if result.state == State.SKIP_WARNING:
        log.warning("Skip recommended: %s", result.decision.skip.reason)
        if not args.yes:
            log.info("Re-run with --yes to generate anyway.")
            return 2
        result = session.proceed_anyway()

    if args.mark_applied:
        result = session.submit(_record_locally)

    ensure_dirs()
    path = write_application_report(build_application_report(vacancy, result), vacancy)
    log.info("Fit %.2f, state %s, report %s", result.fit.fit_score, result.state.value, path)
    return 0


def cmd_import_resume(args: argparse.Namespace) -> int:
    storage = default_storage()
    resume = import_resume(Path(args.path), _client(storage), default_loader())
    save_base_resume(storage, resume)
    log.info("Base resume saved: %s, %s", resume.full_name or "<no name>", resume.title or "<no title>")
    return 0


def cmd_models(args: argparse.Namespace) -> int:
    settings = get_settings(default_storage())
    for model in list_models(resolve_api_key(settings) or None):
        print(f"{model.id:50s} {model.name}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="applyhawk", description="Tailor resumes and cover letters to a job.")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("detect", help="check whether a URL is a job posting")
    p.add_argument("url")
    p.add_argument("--no-fetch", action="store_true", help="classify by URL only")
    p.add_argument("--content", action="store_true", help="print the extracted job text")
    p.set_defaults(func=cmd_detect)

    p = sub.add_parser("apply", help="score fit and generate resume + cover letter")
    p.add_argument("--vacancy-file", required=True, help=".json vacancy or plain-text job description")
    p.add_argument("--yes", action="store_true", help="proceed even when skipping is recommended")
    p.add_argument("--mark-applied", action="store_true", help="record the vacancy as applied")
    p.set_defaults(func=cmd_apply)

    p = sub.add_parser("import-resume", help="parse a PDF/DOCX/TXT resume into the base resume")
    p.add_argument("path")
    p.set_defaults(func=cmd_import_resume)

    p = sub.add_parser("models", help="list chat models available on OpenRouter")
    p.set_defaults(func=cmd_models)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except ApplyHawkError as exc:
        log.error("%s", exc)
        return 1
    except OSError as exc:
        log.error("Request failed: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
