"""Environment and filesystem configuration."""
from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from applyhawk.log import get_logger

if TYPE_CHECKING:
    from applyhawk.models import Settings
    from applyhawk.storage import JsonFileStorage

log = get_logger(__name__)

load_dotenv()

PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent
DATA_DIR: Path = Path(os.environ.get("APPLYHAWK_DATA_DIR") or PROJECT_ROOT / "data")
REPORTS_DIR: Path = PROJECT_ROOT / "reports"
RESUME_DIR: Path = PROJECT_ROOT / "resume"
PROMPTS_DIR: Path = Path(os.environ.get("APPLYHAWK_PROMPTS_DIR") or PROJECT_ROOT / "prompts")
STORAGE_PATH: Path = DATA_DIR / "storage.json"

DEFAULT_MODEL = "anthropic/claude-sonnet-4"


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def ensure_dirs() -> None:
    for d in (DATA_DIR, REPORTS_DIR, RESUME_DIR):
        d.mkdir(parents=True, exist_ok=True)


def default_storage() -> JsonFileStorage:
    from applyhawk.storage import JsonFileStorage

    return JsonFileStorage(STORAGE_PATH)


def resolve_api_key(settings: Settings) -> str:
    """Stored key first; fall back to OPENROUTER_API_KEY from the environment."""
    key = settings.openrouter_api_key.strip() or get_env("OPENROUTER_API_KEY")
    if not settings.openrouter_api_key and key:
        log.debug("Using OpenRouter key from environment")
    return key


def resolve_model(settings: Settings) -> str:
    return settings.preferred_model or get_env("OPENROUTER_MODEL") or DEFAULT_MODEL


def get_resume_path() -> Path | None:
    """First PDF, DOCX or TXT in the resume folder."""
    if not RESUME_DIR.exists():
        return None
    for ext in (".pdf", ".docx", ".txt"):
        for p in sorted(RESUME_DIR.iterdir()):
            if p.suffix.lower() == ext and p.is_file():
                return p
    return None
