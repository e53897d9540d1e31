from applyhawk import config
from applyhawk.models import Settings


def test_stored_key_wins(monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-env")
    assert config.resolve_api_key(Settings(openrouter_api_key="sk-stored")) == "sk-stored"


def test_env_key_fallback(monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", " sk-env ")
    assert config.resolve_api_key(Settings()) == "sk-env"


def test_no_key(monkeypatch):
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    assert config.resolve_api_key(Settings()) == ""


def test_model_resolution(monkeypatch):
    monkeypatch.setenv("OPENROUTER_MODEL", "openai/gpt-4o-mini")
    assert config.resolve_model(Settings(preferred_model="x/y")) == "x/y"
    assert config.resolve_model(Settings(preferred_model="")) == "openai/gpt-4o-mini"
    monkeypatch.delenv("OPENROUTER_MODEL")
    assert config.resolve_model(Settings(preferred_model="")) == config.DEFAULT_MODEL


def test_get_resume_path(monkeypatch, tmp_path):
    monkeypatch.setattr(config, "RESUME_DIR", tmp_path)
    assert config.get_resume_path() is None
    (tmp_path / "notes.md").write_text("x", encoding="utf-8")
    (tmp_path / "cv.txt").write_text("x", encoding="utf-8")
    (tmp_path / "cv.docx").write_bytes(b"x")
    assert config.get_resume_path().name == "cv.docx"


def test_default_storage_path():
    assert config.default_storage().path == config.STORAGE_PATH
