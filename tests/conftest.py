"""
Shared fixtures for the ApplyHawk test suite.

No test touches the network: the OpenAI SDK client is replaced with a
MagicMock whose ``chat.completions.create`` returns canned responses, and
``requests`` is patched where it is used.
"""

import json
import os
import sys
import tempfile
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

# Keep the daily log file out of the working tree.
os.environ.setdefault("APPLYHAWK_LOG_DIR", tempfile.mkdtemp(prefix="applyhawk-logs-"))
os.environ.pop("OPENROUTER_API_KEY", None)
os.environ.pop("OPENROUTER_MODEL", None)

import pytest

from applyhawk.ai_client import OpenRouterClient
from applyhawk.models import ContactInfo, Experience, Resume, Vacancy
from applyhawk.prompts import PromptLoader
from applyhawk.storage import MemoryStorage


def completion(content, model="test/model", total_tokens=42):
    """Shape of an OpenAI SDK ChatCompletion, as far as the client reads it."""
    if isinstance(content, (dict, list)):
        content = json.dumps(content, ensure_ascii=False)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        model=model,
        usage=SimpleNamespace(prompt_tokens=10, completion_tokens=32, total_tokens=total_tokens),
        error=None,
    )


@pytest.fixture
def sdk():
    """The mocked OpenAI SDK object; set ``create.side_effect`` per test."""
    mock = MagicMock()
    return mock


@pytest.fixture
def client(sdk):
    return OpenRouterClient(api_key="sk-or-test", model="test/model", client=sdk)


def sent_prompts(sdk):
    """User-message text of every chat request made so far, in order."""
    prompts = []
    for call in sdk.chat.completions.create.call_args_list:
        messages = call.kwargs["messages"]
        prompts.append(next(m["content"] for m in messages if m["role"] == "user"))
    return prompts


@pytest.fixture
def loader():
    return PromptLoader(ROOT / "prompts")


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def resume():
    return Resume(
        full_name="Ann Petrova",
        title="Backend Engineer",
        summary="Backend engineer focused on payments.",
        experience=[
            Experience(
                company="Globex",
                position="Senior Backend Engineer",
                start_date="2021-03",
                end_date=None,
                description="Payments platform in Go and PostgreSQL.",
                achievements=["Cut p99 latency by 40%"],
            ),
            Experience(
                company="Initech",
                position="Python Developer",
                start_date="2018-01",
                end_date="2021-02",
                description="Internal reporting services in Django.",
            ),
        ],
        skills=["Go", "Python", "PostgreSQL"],
        contacts=ContactInfo(email="ann@example.com", telegram="@ann"),
    )


@pytest.fixture
def vacancy():
    return Vacancy(
        name="Staff Backend Engineer",
        company="Acme",
        description="<p>We build payment rails. You will own the ledger service.</p>",
        key_skills=["Go", "Kafka", "PostgreSQL"],
        experience="5+ years",
        url="https://acme.example/jobs/42",
        id="42",
    )


@pytest.fixture
def fit_reply():
    def make(score, strengths=("Go", "payments"), gaps=("Kafka",)):
        return completion({
            "fitScore": score,
            "strengths": list(strengths),
            "gaps": list(gaps),
            "recommendation": "Worth applying.",
        })

    return make


@pytest.fixture
def personalized_reply():
    return completion({
        "title": "Staff Backend Engineer, Payments",
        "summary": "Payments engineer with ledger experience.",
        "experience": [
            {
                "company": "Globex",
                "position": "Senior Backend Engineer",
                "startDate": "2021-03",
                "endDate": None,
                "description": "Owned the double-entry ledger behind card payments.",
                "achievements": ["Cut p99 latency by 40%"],
            },
            {
                "company": "Initech",
                "position": "Python Developer",
                "startDate": "2018-01",
                "endDate": "2021-02",
                "description": "Event-driven reporting services.",
                "achievements": [],
            },
        ],
        "keySkills": ["Go", "PostgreSQL", "Kafka"],
    })


@pytest.fixture
def letter_reply():
    return completion({
        "cover_letter": "Dear Acme team, I built payment ledgers at Globex.",
        "extraction": {"company_hook": "payment rails"},
    })
