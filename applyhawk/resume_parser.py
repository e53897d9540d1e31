"""Import a resume file into a structured Resume.

Text comes out of PDF (pdftotext or pypdf), DOCX (stdlib zipfile) or TXT;
the model then maps it onto the Resume shape via the ``pdf-parser`` prompt.
"""
from __future__ import annotations

import re
import shutil
import subprocess
import zipfile
from pathlib import Path
from xml.etree import ElementTree

from applyhawk.ai_client import OpenRouterClient
from applyhawk.errors import ValidationError
from applyhawk.i18n import detect_language
from applyhawk.log import get_logger
from applyhawk.models import Resume
from applyhawk.parsing import coerce_reply, parse_json_response
from applyhawk.prompts import PromptLoader

log = get_logger(__name__)

MAX_PROMPT_CHARS = 12000

# ── Text extraction ──────────────────────────────────────────────────────


def extract_text(path: Path) -> str:
    """Return plain text from a PDF, DOCX, or TXT file."""
    suffix = path.suffix.lower()
    if suffix == ".txt":
        return path.read_text(encoding="utf-8", errors="ignore")
    if suffix == ".docx":
        return _extract_docx(path)
    if suffix == ".pdf":
        return _extract_pdf(path)
    raise ValueError(f"Unsupported resume format: {suffix}")


def _fix_spacing(text: str) -> str:
    """Re-insert spaces when PDF extraction glues words together."""
    if not text or len(text) < 50 or text.count(" ") / len(text) > 0.08:
        return text
    log.debug("Low space ratio in extracted PDF text, applying spacing fix")
    fixed = re.sub(r"([a-zа-я])([A-ZА-Я])", r"\1 \2", text)
    fixed = re.sub(r"([^\W\d_])(\d)", r"\1 \2", fixed)
    fixed = re.sub(r"(\d)([^\W\d_])", r"\1 \2", fixed)
    return re.sub(r"([.!?,;:])([^\W\d_])", r"\1 \2", fixed)


def _extract_pdf(path: Path) -> str:
    if shutil.which("pdftotext"):
        result = subprocess.run(
            ["pdftotext", "-layout", str(path), "-"],
            capture_output=True,
            text=True,
            timeout=30,
        )
        if result.returncode == 0 and result.stdout.strip():
            return result.stdout

    from pypdf import PdfReader

    reader = PdfReader(str(path))
    return "\n".join(_fix_spacing(page.extract_text() or "") for page in reader.pages)


def _extract_docx(path: Path) -> str:
    ns = "{http://schemas.openxmlformats.org/wordprocessingml/2006/main}"
    texts: list[str] = []
    with zipfile.ZipFile(path) as zf:
        with zf.open("word/document.xml") as f:
            tree = ElementTree.parse(f)
            for para in tree.iter(f"{ns}p"):
                parts = [node.text for node in para.iter(f"{ns}t") if node.text]
                if parts:
                    texts.append("".join(parts))
    return "\n".join(texts)


# ── Model-based structuring ──────────────────────────────────────────────


def parse_resume_text(
    client: OpenRouterClient,
    loader: PromptLoader,
    text: str,
    language: str | None = None,
) -> Resume:
    if not text or not text.strip():
        raise ValidationError("Resume text is empty.")
    prompt = loader.build("pdf-parser", {"pdfText": text[:MAX_PROMPT_CHARS]}, language or detect_language(text))
    response = client.call(prompt.messages(), temperature=prompt.temperature, max_tokens=prompt.max_tokens)
    data = parse_json_response(response.content, "resume parsing")
    resume = coerce_reply(Resume.from_dict, data, "resume parsing")
    log.info(
        "Parsed resume: name=%s, positions=%d, skills=%d",
        resume.full_name, len(resume.experience), len(resume.skills),
    )
    return resume


def import_resume(path: Path, client: OpenRouterClient, loader: PromptLoader) -> Resume:
    log.info("Extracting text from %s", path.name)
    text = extract_text(path)
    if not text.strip():
        raise ValidationError(f"Could not extract any text from {path.name}")
    return parse_resume_text(client, loader, text)
