"""Load YAML prompt templates and interpolate ``{{dotted.path}}`` variables."""
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from applyhawk.errors import PromptNotFoundError
from applyhawk.log import get_logger

log = get_logger(__name__)

_PLACEHOLDER_RE = re.compile(r"\{\{([^}]+)\}\}")


@dataclass
class PromptTemplate:
    name: str
    user: str
    temperature: float = 0.7
    max_tokens: int = 2000
    system: str | None = None
    description: str | None = None


@dataclass
class BuiltPrompt:
    user: str
    temperature: float
    max_tokens: int
    system: str | None = None

    def messages(self) -> list[dict[str, str]]:
        msgs: list[dict[str, str]] = []
        if self.system:
            msgs.append({"role": "system", "content": self.system})
        msgs.append({"role": "user", "content": self.user})
        return msgs


def _resolve(path: str, variables: dict[str, Any]) -> Any:
    value: Any = variables
    for key in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(key.strip())
    return value


def interpolate(template: str | None, variables: dict[str, Any]) -> str:
    """Substitute every ``{{path}}``; unknown paths become empty strings."""
    if not template:
        return ""

    def _sub(match: re.Match) -> str:
        value = _resolve(match.group(1).strip(), variables)
        if value is None:
            return ""
        if isinstance(value, (list, tuple)):
            return ", ".join(str(v) for v in value)
        return str(value)

    return _PLACEHOLDER_RE.sub(_sub, template)


class PromptLoader:
    """Reads ``<base_dir>/templates/<lang>/<name>.yaml`` and caches the parse.

    With ``use_language_subdirs=False`` templates live directly in
    ``<base_dir>/<name>.yaml``.
    """

    def __init__(
        self,
        base_dir: Path,
        default_language: str = "en",
        use_language_subdirs: bool = True,
    ) -> None:
        self.base_dir = Path(base_dir)
        self.default_language = default_language
        self.use_language_subdirs = use_language_subdirs
        self._cache: dict[str, PromptTemplate] = {}

    def path_for(self, name: str, language: str | None = None) -> Path:
        if self.use_language_subdirs:
            return self.base_dir / "templates" / (language or self.default_language) / f"{name}.yaml"
        return self.base_dir / f"{name}.yaml"

    def _cache_key(self, name: str, language: str | None) -> str:
        if self.use_language_subdirs:
            return f"{language or self.default_language}:{name}"
        return name

    def load(self, name: str, language: str | None = None) -> PromptTemplate:
        key = self._cache_key(name, language)
        if key in self._cache:
            return self._cache[key]

        path = self.path_for(name, language)
        if not path.is_file():
            lang = language or self.default_language
            if self.use_language_subdirs and lang != self.default_language:
                log.debug("No %s template for %r, falling back to %s", lang, name, self.default_language)
                return self.load(name, self.default_language)
            raise PromptNotFoundError(f"Failed to load prompt: {name}")

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if "user" not in data:
            raise PromptNotFoundError(f"Prompt {name} has no 'user' section")

        template = PromptTemplate(
            name=data.get("name", name),
            user=data["user"],
            temperature=float(data.get("temperature", 0.7)),
            max_tokens=int(data.get("max_tokens", 2000)),
            system=data.get("system"),
            description=data.get("description"),
        )
        self._cache[key] = template
        return template

    def build(self, name: str, variables: dict[str, Any], language: str | None = None) -> BuiltPrompt:
        template = self.load(name, language)
        system = interpolate(template.system, variables)
        return BuiltPrompt(
            user=interpolate(template.user, variables),
            temperature=template.temperature,
            max_tokens=template.max_tokens,
            system=system or None,
        )

    def clear_cache(self) -> None:
        self._cache.clear()


def default_loader() -> PromptLoader:
    from applyhawk.config import PROMPTS_DIR

    return PromptLoader(PROMPTS_DIR)
