"""Tests for storage adapters and the typed storage helpers."""

import json
import threading
from datetime import datetime, timezone

import pytest

from applyhawk.errors import ValidationError
from applyhawk.models import AggressiveFitSettings, Settings
from applyhawk.storage import (
    DAILY_COUNTER,
    DAILY_LIMIT,
    SETTINGS,
    JsonFileStorage,
    MemoryStorage,
    get_applied_vacancies,
    get_base_resume,
    get_daily_counter,
    get_remaining_applications,
    get_settings,
    increment_daily_counter,
    is_vacancy_applied,
    mark_vacancy_as_applied,
    save_base_resume,
    save_settings,
)


@pytest.fixture(params=["memory", "file"])
def any_storage(request, tmp_path):
    if request.param == "memory":
        return MemoryStorage()
    return JsonFileStorage(tmp_path / "data" / "storage.json")


class TestAdapters:

    def test_get_set_remove_clear(self, any_storage):
        assert any_storage.get("missing") is None
        any_storage.set("a", {"x": [1, 2]})
        any_storage.set("b", "text")
        assert any_storage.get("a") == {"x": [1, 2]}
        any_storage.remove("a")
        assert any_storage.get("a") is None
        any_storage.clear()
        assert any_storage.get("b") is None

    def test_memory_values_are_copies(self):
        storage = MemoryStorage()
        value = {"items": [1]}
        storage.set("k", value)
        value["items"].append(2)
        storage.get("k")["items"].append(3)
        assert storage.get("k") == {"items": [1]}

    def test_file_persists_across_instances(self, tmp_path):
        path = tmp_path / "storage.json"
        JsonFileStorage(path).set("settings", {"preferred_model": "x/y"})
        assert JsonFileStorage(path).get("settings") == {"preferred_model": "x/y"}
        assert json.loads(path.read_text(encoding="utf-8"))["settings"]["preferred_model"] == "x/y"

    def test_corrupt_file_reads_as_empty(self, tmp_path):
        path = tmp_path / "storage.json"
        path.write_text("{broken", encoding="utf-8")
        storage = JsonFileStorage(path)
        assert storage.get("settings") is None
        storage.set("k", 1)
        assert storage.get("k") == 1

    def test_update_returns_new_value(self, any_storage):
        assert any_storage.update("n", lambda v: (v or 0) + 1) == 1
        assert any_storage.update("n", lambda v: (v or 0) + 1) == 2
        assert any_storage.get("n") == 2

    def test_file_update_is_atomic_across_writers(self, tmp_path):
        path = tmp_path / "storage.json"

        def work():
            # Separate instances, as the CLI and the app would hold.
            storage = JsonFileStorage(path)
            for _ in range(10):
                increment_daily_counter(storage)
                mark_vacancy_as_applied(storage, threading.current_thread().name)

        threads = [threading.Thread(target=work, name=f"w{i}") for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        storage = JsonFileStorage(path)
        assert get_daily_counter(storage)["count"] == 40
        assert sorted(get_applied_vacancies(storage)) == ["w0", "w1", "w2", "w3"]


class TestSettings:

    def test_defaults(self, storage):
        settings = get_settings(storage)
        assert settings == Settings()
        assert settings.aggressive_fit == AggressiveFitSettings()

    def test_partial_update_keeps_other_keys(self, any_storage):
        save_settings(any_storage, {"contact_email": "ann@example.com", "preferred_model": "x/y"})
        save_settings(any_storage, {"salary_expectation": "5000 EUR"})

        settings = get_settings(any_storage)
        assert settings.contact_email == "ann@example.com"
        assert settings.preferred_model == "x/y"
        assert settings.salary_expectation == "5000 EUR"

    def test_camel_case_stored_keys(self, storage):
        storage.set(SETTINGS, {"openRouterApiKey": "sk", "aggressiveFit": {"minFitScore": 0.3}})
        settings = get_settings(storage)
        assert settings.openrouter_api_key == "sk"
        assert settings.aggressive_fit.min_fit_score == 0.3
        assert settings.aggressive_fit.max_aggressiveness == 0.95

    def test_camel_case_partial_replaces_stored_value(self, any_storage):
        save_settings(any_storage, {"preferred_model": "a/b", "aggressive_fit": {"min_fit_score": 0.2}})
        save_settings(any_storage, {"preferredModel": "x/y", "aggressiveFit": {"minFitScore": 0.4}})

        settings = get_settings(any_storage)
        assert settings.preferred_model == "x/y"
        assert settings.aggressive_fit.min_fit_score == 0.4
        assert "preferredModel" not in any_storage.get(SETTINGS)

    def test_save_settings_object(self, storage):
        saved = save_settings(storage, Settings(contact_telegram="@ann"))
        assert saved.contact_telegram == "@ann"
        assert get_settings(storage).contact_telegram == "@ann"


class TestBaseResume:

    def test_missing(self, storage):
        assert get_base_resume(storage) is None

    def test_round_trip(self, any_storage, resume):
        save_base_resume(any_storage, resume)
        assert get_base_resume(any_storage) == resume

    def test_partial_dict_gets_defaults(self, storage):
        saved = save_base_resume(storage, {"fullName": "Ann", "skills": "Go, SQL"})
        assert saved.full_name == "Ann"
        assert saved.skills == ["Go", "SQL"]
        assert saved.experience == []

    def test_wrong_shape_is_rejected(self, storage):
        with pytest.raises(ValidationError, match="wrong shape"):
            save_base_resume(storage, {"fullName": "Ann", "experience": [{"company": "Globex", "achievements": 5}]})
        with pytest.raises(ValidationError):
            save_base_resume(storage, ["not", "a", "resume"])
        assert get_base_resume(storage) is None


class TestAppliedVacancies:

    def test_mark_is_idempotent(self, any_storage):
        mark_vacancy_as_applied(any_storage, "42")
        mark_vacancy_as_applied(any_storage, "42")
        mark_vacancy_as_applied(any_storage, "7")
        assert get_applied_vacancies(any_storage) == ["42", "7"]
        assert is_vacancy_applied(any_storage, "42")
        assert not is_vacancy_applied(any_storage, "1")


class TestDailyCounter:

    def test_starts_at_zero(self, storage):
        counter = get_daily_counter(storage)
        assert counter["count"] == 0
        assert get_remaining_applications(storage) == DAILY_LIMIT

    def test_increment(self, storage):
        increment_daily_counter(storage)
        counter = increment_daily_counter(storage)
        assert counter["count"] == 2
        assert counter["date"] == datetime.now(timezone.utc).strftime("%Y-%m-%d")
        assert get_remaining_applications(storage) == DAILY_LIMIT - 2

    def test_resets_on_new_day(self, storage):
        storage.set(DAILY_COUNTER, {"date": "2000-01-01", "count": 150})
        assert get_daily_counter(storage)["count"] == 0
        assert increment_daily_counter(storage)["count"] == 1

    def test_remaining_never_negative(self, storage):
        today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        storage.set(DAILY_COUNTER, {"date": today, "count": DAILY_LIMIT + 5})
        assert get_remaining_applications(storage) == 0
