"""Decide whether a web page is a job posting.

Strategies run cheapest-first and the first confident one wins:

1. URL patterns of known job boards and ATS platforms;
2. schema.org ``JobPosting`` JSON-LD blocks;
3. keyword / apply-button / headline heuristics, boosted by a weak URL match.

Detection is a pure function of ``(url, html)``; :func:`fetch_page` is the
only networked helper and is used by the CLI, not by :func:`detect`.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

import requests
from bs4 import BeautifulSoup, Comment
from bs4.element import Tag
from soupsieve import SelectorSyntaxError

from applyhawk.log import get_logger
from applyhawk.models import JobPageDetectionResult
from applyhawk.retry import retry

log = get_logger(__name__)

URL_CONFIDENT = 0.8
JSON_LD_CONFIDENCE = 0.95
HEURISTIC_MAX_SCORE = 15
HEURISTIC_THRESHOLD = 0.4
URL_BLEND_WEIGHT = 0.5

# Ordered: the first matching pattern decides platform and confidence.
JOB_SITE_PATTERNS: list[tuple[re.Pattern, str, float]] = [
    (re.compile(r"hh\.ru/vacancy/"), "hh", 1.0),
    (re.compile(r"linkedin\.com/jobs/view/"), "linkedin", 1.0),
    (re.compile(r"linkedin\.com/jobs/collections/"), "linkedin", 0.8),
    (re.compile(r"indeed\.com/viewjob"), "indeed", 1.0),
    (re.compile(r"indeed\.com/jobs"), "indeed", 0.8),
    (re.compile(r"indeed\.[a-z]+/viewjob"), "indeed", 1.0),
    (re.compile(r"glassdoor\.com/job-listing/"), "glassdoor", 1.0),
    (re.compile(r"glassdoor\.[a-z]+/job-listing/"), "glassdoor", 1.0),
    (re.compile(r"monster\.com/job-openings/"), "monster", 1.0),
    (re.compile(r"ziprecruiter\.com/jobs/"), "ziprecruiter", 0.9),
    (re.compile(r"wellfound\.com/jobs/"), "wellfound", 1.0),
    (re.compile(r"angel\.co/company/[^/]+/jobs/"), "wellfound", 1.0),
    (re.compile(r"stackoverflow\.com/jobs/"), "stackoverflow", 1.0),
    (re.compile(r"dice\.com/job-detail/"), "dice", 1.0),
    (re.compile(r"weworkremotely\.com/remote-jobs/"), "weworkremotely", 1.0),
    (re.compile(r"remoteok\.com/remote-jobs/"), "remoteok", 1.0),
    (re.compile(r"/careers?/[^/]+/[^/]+"), "generic", 0.6),
    (re.compile(r"/jobs?/[^/]+"), "generic", 0.5),
    (re.compile(r"/positions?/[^/]+"), "generic", 0.5),
    (re.compile(r"/vacancies?/[^/]+"), "generic", 0.5),
    (re.compile(r"greenhouse\.io/"), "greenhouse", 0.8),
    (re.compile(r"lever\.co/"), "lever", 0.8),
    (re.compile(r"workable\.com/"), "workable", 0.8),
    (re.compile(r"ashbyhq\.com/"), "ashby", 0.8),
    (re.compile(r"breezy\.hr/"), "breezy", 0.8),
]

JOB_KEYWORDS: list[str] = [
    "apply now",
    "apply for this job",
    "job description",
    "responsibilities",
    "requirements",
    "qualifications",
    "about the role",
    "what you'll do",
    "what we're looking for",
    "experience required",
    "salary",
    "compensation",
    "benefits",
    "full-time",
    "part-time",
    "remote",
    "hybrid",
    "on-site",
    "откликнуться",
    "подать заявку",
    "описание вакансии",
    "обязанности",
    "требования",
    "условия",
    "опыт работы",
    "зарплата",
    "оклад",
    "полная занятость",
    "частичная занятость",
    "удаленная работа",
]

APPLY_BUTTON_SELECTORS: list[str] = [
    'button[class*="apply"]',
    'a[class*="apply"]',
    'button[id*="apply"]',
    'a[id*="apply"]',
    '[data-test*="apply"]',
    '[data-testid*="apply"]',
    'button:-soup-contains("Apply")',
    'a:-soup-contains("Apply")',
    ".apply-button",
    ".job-apply",
    "#apply-now",
]

ROLE_NOUNS: tuple[str, ...] = ("engineer", "developer", "manager", "designer", "analyst")

CONTENT_SELECTORS: list[str] = [
    '[class*="job-description"]',
    '[class*="jobDescription"]',
    '[id*="job-description"]',
    '[class*="description"]',
    '[data-test*="description"]',
    "article",
    "main",
    ".content",
    "#content",
]

_INVISIBLE_TAGS = {"script", "style", "noscript", "template"}


@dataclass
class PageContent:
    title: str
    content: str
    url: str


def _soup(document: str | BeautifulSoup | None) -> BeautifulSoup:
    if isinstance(document, BeautifulSoup):
        return document
    return BeautifulSoup(document or "", "html.parser")


def _visible_text(node: Tag | None) -> str:
    """Approximate ``innerText``: all text except script/style contents."""
    if node is None:
        return ""
    parts = [
        s for s in node.find_all(string=True)
        if not isinstance(s, Comment) and s.parent is not None and s.parent.name not in _INVISIBLE_TAGS
    ]
    return " ".join(p.strip() for p in parts if p.strip())


# ── Strategy 1: URL ──────────────────────────────────────────────────────


def check_url_patterns(url: str) -> JobPageDetectionResult:
    for pattern, platform, confidence in JOB_SITE_PATTERNS:
        if pattern.search(url or ""):
            return JobPageDetectionResult(True, platform, confidence, "url_pattern")
    return JobPageDetectionResult(False, None, 0.0, "url_pattern")


# ── Strategy 2: JSON-LD ──────────────────────────────────────────────────


def _is_job_posting(item: Any) -> bool:
    if not isinstance(item, dict):
        return False
    kind = item.get("@type")
    return kind == "JobPosting" or (isinstance(kind, list) and "JobPosting" in kind)


def _find_job_posting(data: Any) -> dict | None:
    if _is_job_posting(data):
        return data
    if isinstance(data, list):
        return next((item for item in data if _is_job_posting(item)), None)
    if isinstance(data, dict) and isinstance(data.get("@graph"), list):
        return next((item for item in data["@graph"] if _is_job_posting(item)), None)
    return None


def _salary(base: Any) -> str | None:
    if not isinstance(base, dict):
        return None
    value = base.get("value") if isinstance(base.get("value"), dict) else {}
    low = value.get("minValue", value.get("value", ""))
    high = value.get("maxValue", "")
    return f"{base.get('currency', '')} {low} - {high}".strip()


def _locality(location: Any) -> str:
    if isinstance(location, list):
        location = location[0] if location else {}
    if not isinstance(location, dict):
        return ""
    address = location.get("address")
    return address.get("addressLocality", "") if isinstance(address, dict) else ""


def extract_job_from_schema(schema: dict) -> dict[str, Any]:
    org = schema.get("hiringOrganization")
    skills = schema.get("skills") or []
    if isinstance(skills, str):
        skills = [s.strip() for s in skills.split(",") if s.strip()]
    return {
        "name": schema.get("title") or schema.get("name") or "",
        "company": org.get("name", "") if isinstance(org, dict) else "",
        "description": schema.get("description") or "",
        "key_skills": skills,
        "salary": _salary(schema.get("baseSalary")),
        "location": _locality(schema.get("jobLocation")),
        "date_posted": schema.get("datePosted") or "",
    }


def check_json_ld(soup: BeautifulSoup) -> JobPageDetectionResult:
    for script in soup.find_all("script", attrs={"type": re.compile(r"ld\+json", re.IGNORECASE)}):
        raw = script.string or script.get_text()
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            log.debug("Skipping malformed JSON-LD block (%d chars)", len(raw or ""))
            continue
        posting = _find_job_posting(data)
        if posting is not None:
            return JobPageDetectionResult(
                True, "schema.org", JSON_LD_CONFIDENCE, "json_ld",
                job_data=extract_job_from_schema(posting),
            )
    return JobPageDetectionResult(False, None, 0.0, "json_ld")


# ── Strategy 3: heuristics ───────────────────────────────────────────────


def _has_apply_button(soup: BeautifulSoup) -> bool:
    for selector in APPLY_BUTTON_SELECTORS:
        try:
            if soup.select_one(selector) is not None:
                return True
        except SelectorSyntaxError:
            log.debug("Unsupported selector %r", selector)
    return False


def _has_job_headline(soup: BeautifulSoup) -> bool:
    h1 = soup.find("h1")
    if h1 is None:
        return False
    text = h1.get_text(" ", strip=True)
    return len(text) < 100 and any(noun in text.lower() for noun in ROLE_NOUNS)


def check_heuristics(soup: BeautifulSoup) -> JobPageDetectionResult:
    body_text = _visible_text(soup.body or soup).lower()
    page_title = (soup.title.get_text() if soup.title else "").lower()

    score = 0
    matched: list[str] = []
    for keyword in JOB_KEYWORDS:
        if keyword in body_text:
            score += 1
            matched.append(keyword)
        if keyword in page_title:
            score += 2
            matched.append(f"[title] {keyword}")

    if _has_apply_button(soup):
        score += 5
    if _has_job_headline(soup):
        score += 3

    confidence = min(score / HEURISTIC_MAX_SCORE, 1.0)
    return JobPageDetectionResult(
        confidence > HEURISTIC_THRESHOLD, "heuristic", confidence, "heuristic",
        matched_keywords=matched,
    )


# ── Entry points ─────────────────────────────────────────────────────────


def detect(url: str, document: str | BeautifulSoup | None = None) -> JobPageDetectionResult:
    """Classify the page at *url* whose current HTML is *document*."""
    url_result = check_url_patterns(url)
    if url_result.is_job_page and url_result.confidence >= URL_CONFIDENT:
        log.debug("Job page via URL pattern: %s (%s)", url_result.platform, url)
        return url_result

    soup = _soup(document)
    schema_result = check_json_ld(soup)
    if schema_result.is_job_page:
        log.debug("Job page via JSON-LD: %s", url)
        return schema_result

    result = check_heuristics(soup)
    if url_result.confidence > 0:
        result.confidence = min(1.0, result.confidence + url_result.confidence * URL_BLEND_WEIGHT)
        result.platform = url_result.platform or result.platform
    result.is_job_page = result.confidence > HEURISTIC_THRESHOLD

    if result.is_job_page:
        log.debug("Job page via heuristics (%.2f): %s", result.confidence, url)
    return result


def extract_job_content(url: str, document: str | BeautifulSoup | None) -> PageContent:
    soup = _soup(document)
    h1 = soup.find("h1")
    title = h1.get_text(" ", strip=True) if h1 else (soup.title.get_text(strip=True) if soup.title else "")

    for selector in CONTENT_SELECTORS:
        element = soup.select_one(selector)
        if element is None:
            continue
        text = _visible_text(element)
        if len(text) > 200:
            return PageContent(title=title, content=text, url=url)

    return PageContent(title=title, content=_visible_text(soup.body or soup)[:10000], url=url)


@retry(max_attempts=3, base_delay=1.5)
def fetch_page(url: str, timeout: float = 20) -> str:
    r = requests.get(url, timeout=timeout, headers={"User-Agent": "Mozilla/5.0 (ApplyHawk)"})
    r.raise_for_status()
    return r.text
