"""Tests for the run_apply command-line entry point."""

import json
from unittest.mock import patch

import pytest

import run_apply
from applyhawk.models import Settings
from applyhawk.storage import get_applied_vacancies, get_base_resume, save_base_resume, save_settings

from conftest import completion


@pytest.fixture
def cli_env(monkeypatch, tmp_path, client, storage, loader):
    monkeypatch.setattr(run_apply, "default_storage", lambda: storage)
    monkeypatch.setattr(run_apply, "default_loader", lambda: loader)
    monkeypatch.setattr(run_apply, "_client", lambda _storage: client)
    monkeypatch.setattr(run_apply, "ensure_dirs", lambda: None)
    monkeypatch.setattr("applyhawk.report.REPORTS_DIR", tmp_path / "reports")
    return tmp_path


def _vacancy_file(tmp_path, vacancy):
    path = tmp_path / "job.json"
    path.write_text(json.dumps(vacancy.to_dict()), encoding="utf-8")
    return str(path)


def test_detect_by_url_only():
    assert run_apply.main(["detect", "https://hh.ru/vacancy/123", "--no-fetch"]) == 0
    assert run_apply.main(["detect", "https://example.com/about", "--no-fetch"]) == 1


def test_detect_fetches_page():
    html = '<script type="application/ld+json">{"@type": "JobPosting", "title": "SRE"}</script>'
    with patch.object(run_apply, "fetch_page", return_value=html) as fetch:
        assert run_apply.main(["detect", "https://example.com/post/9"]) == 0
    fetch.assert_called_once_with("https://example.com/post/9")


def test_apply_writes_report(cli_env, sdk, storage, resume, vacancy, fit_reply, personalized_reply, letter_reply):
    save_base_resume(storage, resume)
    sdk.chat.completions.create.side_effect = [fit_reply(0.7), personalized_reply, letter_reply]

    code = run_apply.main(["apply", "--vacancy-file", _vacancy_file(cli_env, vacancy), "--mark-applied"])

    assert code == 0
    reports = list((cli_env / "reports").glob("apply_*.md"))
    assert len(reports) == 1
    assert "## Cover letter" in reports[0].read_text(encoding="utf-8")
    assert get_applied_vacancies(storage) == ["42"]


def test_apply_stops_on_skip_warning(cli_env, sdk, storage, resume, vacancy, fit_reply):
    save_base_resume(storage, resume)
    sdk.chat.completions.create.side_effect = [fit_reply(0.05)]

    assert run_apply.main(["apply", "--vacancy-file", _vacancy_file(cli_env, vacancy)]) == 2
    assert not (cli_env / "reports").exists()


def test_apply_without_resume_fails_cleanly(cli_env, sdk, vacancy):
    assert run_apply.main(["apply", "--vacancy-file", _vacancy_file(cli_env, vacancy)]) == 1
    sdk.chat.completions.create.assert_not_called()


def test_import_resume(cli_env, sdk, storage):
    path = cli_env / "cv.txt"
    path.write_text("Ann Petrova\nBackend Engineer at Globex since 2021", encoding="utf-8")
    sdk.chat.completions.create.return_value = completion({
        "fullName": "Ann Petrova",
        "experience": [{"company": "Globex", "position": "Backend Engineer", "startDate": "2021"}],
    })

    assert run_apply.main(["import-resume", str(path)]) == 0
    assert get_base_resume(storage).full_name == "Ann Petrova"


def test_missing_api_key(monkeypatch, storage):
    monkeypatch.setattr(run_apply, "default_storage", lambda: storage)
    save_settings(storage, Settings(openrouter_api_key=""))
    assert run_apply.main(["import-resume", "cv.txt"]) == 1
