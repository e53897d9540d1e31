"""Apply-session orchestration: one vacancy, one pass through the pipeline.

    IDLE → FIT_SCORING → (SKIP_WARNING) → PERSONALIZING → LETTER_GENERATION
         → READY_TO_SUBMIT → SUBMITTED

Any failure moves the session to FAILED and re-raises the original error.
Nothing is retried automatically and nothing is cached between attempts;
:meth:`ApplySession.retry` starts over from fit scoring.

Cancellation is cooperative. A call already in flight is not aborted; when
it returns after :meth:`ApplySession.cancel` its result is dropped.
"""
from __future__ import annotations

import hashlib
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from applyhawk.ai_client import OpenRouterClient
from applyhawk.errors import ApiError, SessionBusyError, SessionStateError, ValidationError
from applyhawk.fit import assess_fit, evaluate_fit
from applyhawk.i18n import detect_language
from applyhawk.log import get_logger
from applyhawk.models import (
    CoverLetter,
    FitAssessment,
    FitDecision,
    PersonalizedResume,
    Resume,
    Settings,
    Vacancy,
)
from applyhawk.personalizer import generate_cover_letter, generate_personalized_resume
from applyhawk.prompts import PromptLoader
from applyhawk.storage import (
    StorageAdapter,
    get_base_resume,
    get_settings,
    increment_daily_counter,
    mark_vacancy_as_applied,
)

log = get_logger(__name__)


class State(str, Enum):
    IDLE = "idle"
    FIT_SCORING = "fit_scoring"
    SKIP_WARNING = "skip_warning"
    PERSONALIZING = "personalizing"
    LETTER_GENERATION = "letter_generation"
    READY_TO_SUBMIT = "ready_to_submit"
    SUBMITTED = "submitted"
    FAILED = "failed"


@dataclass
class SubmitResult:
    success: bool
    error: str | None = None


# (vacancy_id, resume_hash, cover_letter) -> SubmitResult
Submitter = Callable[[str, str, str], SubmitResult]


@dataclass
class ApplyResult:
    state: State
    fit: FitAssessment | None = None
    decision: FitDecision | None = None
    resume: PersonalizedResume | None = None
    cover_letter: CoverLetter | None = None
    error: Exception | None = None


class Cancelled(Exception):
    """Internal signal: the session was cancelled while a call was in flight."""


class ApplySession:
    def __init__(
        self,
        client: OpenRouterClient,
        loader: PromptLoader,
        storage: StorageAdapter,
        vacancy: Vacancy,
        settings: Settings | None = None,
    ) -> None:
        self.client = client
        self.loader = loader
        self.storage = storage
        self.vacancy = vacancy
        self.settings = settings or get_settings(storage)
        self.language = detect_language(vacancy.description)

        self.state = State.IDLE
        self.base_resume: Resume | None = None
        self.fit: FitAssessment | None = None
        self.decision: FitDecision | None = None
        self.resume: PersonalizedResume | None = None
        self.cover_letter: CoverLetter | None = None
        self.error: Exception | None = None

        self._busy = threading.Lock()
        self._generation = 0

    # ── public API ───────────────────────────────────────────────────────

    @property
    def result(self) -> ApplyResult:
        return ApplyResult(
            state=self.state,
            fit=self.fit,
            decision=self.decision,
            resume=self.resume,
            cover_letter=self.cover_letter,
            error=self.error,
        )

    def start(self) -> ApplyResult:
        return self._guarded(self._run_from_scratch, "start", State.IDLE, State.FAILED)

    def retry(self) -> ApplyResult:
        """Run again from fit scoring after a failure; nothing is reused."""
        return self._guarded(self._run_from_scratch, "retry", State.FAILED)

    def proceed_anyway(self) -> ApplyResult:
        """User override of a skip recommendation."""
        log.info("Proceeding despite skip recommendation for %s", self.vacancy.name)
        return self._guarded(self._generate, "proceed", State.SKIP_WARNING)

    def cancel(self) -> None:
        """Stop forward progress; late results from in-flight calls are dropped."""
        self._generation += 1
        self._reset()
        self.state = State.IDLE
        log.info("Apply session for %s cancelled", self.vacancy.name)

    def submit(self, submitter: Submitter) -> ApplyResult:
        if self.state != State.READY_TO_SUBMIT:
            raise SessionStateError(f"Cannot submit from {self.state.value}")
        if self.cover_letter is None or self.resume is None:
            raise SessionStateError("Nothing generated to submit")

        outcome = submitter(self.vacancy.id, self.resume_hash(), self.cover_letter.text)
        if not outcome.success:
            raise ApiError(outcome.error or "Application was not accepted")

        if self.vacancy.id:
            mark_vacancy_as_applied(self.storage, self.vacancy.id)
        counter = increment_daily_counter(self.storage)
        self.state = State.SUBMITTED
        log.info("Applied to %s @ %s (%d today)", self.vacancy.name, self.vacancy.company, counter["count"])
        return self.result

    def resume_hash(self) -> str:
        """Stable id of the personalized resume, passed to the job-site client."""
        payload = repr(self.resume.to_dict() if self.resume else None).encode("utf-8")
        return hashlib.sha256(payload).hexdigest()[:16]

    # ── pipeline ─────────────────────────────────────────────────────────

    def _guarded(self, step: Callable[[int], None], action: str, *allowed: State) -> ApplyResult:
        if not self._busy.acquire(blocking=False):
            raise SessionBusyError("An apply flow is already running")
        generation = self._generation
        try:
            if self.state not in allowed:
                raise SessionStateError(f"Cannot {action} from {self.state.value}")
            step(generation)
        except SessionStateError:
            raise
        except Cancelled:
            log.debug("Dropped result of cancelled session step")
        except Exception as exc:
            if generation == self._generation:
                self.state = State.FAILED
                self.error = exc
            raise
        finally:
            self._busy.release()
        return self.result

    def _check(self, generation: int) -> None:
        if generation != self._generation:
            raise Cancelled()

    def _reset(self) -> None:
        self.fit = self.decision = self.resume = self.cover_letter = None
        self.error = None

    def _run_from_scratch(self, generation: int) -> None:
        self._reset()
        self.base_resume = get_base_resume(self.storage)
        if self.base_resume is None or not self.base_resume.experience:
            raise ValidationError("Base resume is empty. Fill in your resume before applying.")

        self.state = State.FIT_SCORING
        fit = assess_fit(self.client, self.loader, self.vacancy, self.base_resume, self.language)
        self._check(generation)
        self.fit = fit
        self.decision = evaluate_fit(fit, self.settings.aggressive_fit)

        if self.decision.skip.skip:
            self.state = State.SKIP_WARNING
            return
        self._generate(generation)

    def _generate(self, generation: int) -> None:
        if self.base_resume is None or self.decision is None:
            raise SessionStateError("Fit has not been scored for this session")
        aggressiveness = self.decision.aggressiveness

        self.state = State.PERSONALIZING
        resume = generate_personalized_resume(
            self.client, self.loader, self.base_resume, self.vacancy,
            fit_assessment=self.fit,
            aggressiveness=aggressiveness,
            settings=self.settings,
            language=self.language,
        )
        self._check(generation)
        self.resume = resume

        # Sequential on purpose: the letter quotes the rewritten experience.
        self.state = State.LETTER_GENERATION
        letter = generate_cover_letter(
            self.client, self.loader, self.vacancy, self.base_resume,
            personalized=resume,
            fit_assessment=self.fit,
            aggressiveness=aggressiveness,
            settings=self.settings,
            language=self.language,
        )
        self._check(generation)
        self.cover_letter = letter
        self.state = State.READY_TO_SUBMIT
