"""Key-value persistence for the resume, settings and application history.

``JsonFileStorage`` keeps every key in one JSON document guarded by an
advisory ``fcntl`` lock, so the CLI and the Streamlit app can share it.
"""
from __future__ import annotations

import copy
import fcntl
import json
import os
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from applyhawk.errors import ValidationError
from applyhawk.log import get_logger
from applyhawk.models import Resume, Settings

log = get_logger(__name__)

BASE_RESUME = "baseResume"
SETTINGS = "settings"
APPLIED_VACANCIES = "appliedVacancies"
DAILY_COUNTER = "dailyCounter"

DAILY_LIMIT = 200


class StorageAdapter(ABC):
    @abstractmethod
    def get(self, key: str) -> Any:
        """Stored value, or None when the key is absent."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass

    def update(self, key: str, fn: Callable[[Any], Any]) -> Any:
        """Replace the value under *key* with ``fn(current)`` and return it."""
        value = fn(self.get(key))
        self.set(key, value)
        return value


class MemoryStorage(StorageAdapter):
    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any:
        return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def update(self, key: str, fn: Callable[[Any], Any]) -> Any:
        with self._lock:
            return super().update(key, fn)


def _lock(f, exclusive: bool = True) -> None:
    try:
        fcntl.flock(f.fileno(), fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH)
    except (OSError, AttributeError):
        pass


def _unlock(f) -> None:
    try:
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)
    except (OSError, AttributeError):
        pass


class JsonFileStorage(StorageAdapter):
    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock_path = self.path.with_suffix(self.path.suffix + ".lock")

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            text = f.read()
        if not text.strip():
            return {}
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            log.error("Storage file %s is corrupt; treating as empty", self.path)
            return {}

    def _write(self, data: dict[str, Any]) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp, self.path)

    def _update(self, mutate) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._lock_path, "a") as lock:
            _lock(lock)
            try:
                data = self._read()
                mutate(data)
                self._write(data)
            finally:
                _unlock(lock)

    def get(self, key: str) -> Any:
        if not self.path.exists():
            return None
        with open(self._lock_path, "a") as lock:
            _lock(lock, exclusive=False)
            try:
                return self._read().get(key)
            finally:
                _unlock(lock)

    def set(self, key: str, value: Any) -> None:
        self._update(lambda data: data.__setitem__(key, value))
        log.debug("Stored %s", key)

    def remove(self, key: str) -> None:
        self._update(lambda data: data.pop(key, None))

    def clear(self) -> None:
        self._update(lambda data: data.clear())
        log.info("Cleared storage %s", self.path)

    def update(self, key: str, fn: Callable[[Any], Any]) -> Any:
        """Read-modify-write of one key under a single exclusive lock."""
        result = {}

        def mutate(data: dict[str, Any]) -> None:
            result["value"] = data[key] = fn(copy.deepcopy(data.get(key)))

        self._update(mutate)
        return result["value"]


# ── Typed helpers ────────────────────────────────────────────────────────


def get_settings(storage: StorageAdapter) -> Settings:
    """Stored settings; keys never saved read as their defaults."""
    return Settings.from_dict(storage.get(SETTINGS))


# camelCase names used by older stored documents and the model-facing JSON.
_SETTINGS_ALIASES = {
    "openRouterApiKey": "openrouter_api_key",
    "preferredModel": "preferred_model",
    "defaultHHResumeId": "default_hh_resume_id",
    "contactEmail": "contact_email",
    "contactTelegram": "contact_telegram",
    "salaryExpectation": "salary_expectation",
    "aggressiveFit": "aggressive_fit",
}


def save_settings(storage: StorageAdapter, partial: dict[str, Any] | Settings) -> Settings:
    """Shallow-merge *partial* onto the current settings and persist the result.

    camelCase keys in *partial* are renamed to the stored snake_case names
    before merging; a nested ``aggressive_fit`` replaces the stored one.
    """
    if isinstance(partial, Settings):
        partial = partial.to_dict()
    renamed = {_SETTINGS_ALIASES.get(key, key): value for key, value in partial.items()}

    def merge(current: dict[str, Any] | None) -> dict[str, Any]:
        merged = Settings.from_dict(current).to_dict()
        merged.update(renamed)
        return Settings.from_dict(merged).to_dict()

    return Settings.from_dict(storage.update(SETTINGS, merge))


def get_base_resume(storage: StorageAdapter) -> Resume | None:
    data = storage.get(BASE_RESUME)
    return Resume.from_dict(data) if data else None


def save_base_resume(storage: StorageAdapter, resume: Resume | dict[str, Any]) -> Resume:
    if isinstance(resume, Resume):
        stored = resume
    else:
        try:
            stored = Resume.from_dict(resume)
        except (TypeError, ValueError, AttributeError) as exc:
            raise ValidationError(f"Resume data has the wrong shape: {exc}") from exc
    storage.set(BASE_RESUME, stored.to_dict())
    log.info("Saved base resume (%d positions)", len(stored.experience))
    return stored


def get_applied_vacancies(storage: StorageAdapter) -> list[str]:
    return list(storage.get(APPLIED_VACANCIES) or [])


def mark_vacancy_as_applied(storage: StorageAdapter, vacancy_id: str) -> None:
    def add(applied: list[str] | None) -> list[str]:
        applied = list(applied or [])
        if vacancy_id not in applied:
            applied.append(vacancy_id)
        return applied

    storage.update(APPLIED_VACANCIES, add)


def is_vacancy_applied(storage: StorageAdapter, vacancy_id: str) -> bool:
    return vacancy_id in get_applied_vacancies(storage)


def _today() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


def get_daily_counter(storage: StorageAdapter) -> dict[str, Any]:
    """Today's counter; a counter stored on an earlier day reads as zero."""
    return _fresh_counter(storage.get(DAILY_COUNTER))


def _fresh_counter(counter: dict[str, Any] | None) -> dict[str, Any]:
    today = _today()
    if not counter or counter.get("date") != today:
        return {"date": today, "count": 0}
    return counter


def increment_daily_counter(storage: StorageAdapter) -> dict[str, Any]:
    def bump(counter: dict[str, Any] | None) -> dict[str, Any]:
        counter = _fresh_counter(counter)
        counter["count"] += 1
        return counter

    return dict(storage.update(DAILY_COUNTER, bump))


def get_remaining_applications(storage: StorageAdapter) -> int:
    return max(0, DAILY_LIMIT - get_daily_counter(storage)["count"])
