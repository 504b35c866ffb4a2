"""
AI Enhancement Service

Single-shot calls to the generation service for rewriting the bio and the
project descriptions, plus the session object that decides which response is
shown to the user when several calls overlap.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import sys
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel

from ..ai.client import InvalidAPIKeyError, LLMClient, LLMError
from ..ai.prompts import (
    SYSTEM_PROMPT,
    EnhanceBioInput,
    EnhanceBioOutput,
    SuggestProjectDescriptionsInput,
    SuggestProjectDescriptionsOutput,
    build_enhance_bio_prompt,
    build_project_descriptions_prompt,
)
from ..models.errors import ServiceError, ValidationError
from ..models.portfolio import PortfolioRecord, parse_skills
from .capture_service import FormDraft

logger = logging.getLogger(__name__)

_DATACLASS_KWARGS = {"slots": True} if sys.version_info >= (3, 10) else {}

BIO_FIELD = "bio"
PROJECTS_FIELD = "projects"
ENHANCEABLE_FIELDS = (BIO_FIELD, PROJECTS_FIELD)

OutputModel = TypeVar("OutputModel", bound=BaseModel)


def profile_from_record(record: PortfolioRecord) -> EnhanceBioInput:
    return EnhanceBioInput(
        name=record.name,
        age=record.age,
        occupation=record.occupation,
        contact_information=record.contact_information,
        short_bio=record.short_bio,
        skills=list(record.skills),
        project_descriptions=[d for d in record.project_descriptions() if d.strip()],
    )


def profile_from_draft(draft: FormDraft) -> EnhanceBioInput:
    """Build the bio request from an unsubmitted form."""
    if not draft.short_bio.strip():
        raise ValidationError(missing_fields=["shortBio"])
    age_text = draft.age.strip()
    if age_text and not (age_text.isascii() and age_text.isdigit()):
        raise ValidationError(invalid_fields={"age": "must be a non-negative whole number"})
    return EnhanceBioInput(
        name=draft.name.strip(),
        age=int(age_text) if age_text else 0,
        occupation=draft.occupation.strip(),
        contact_information=draft.contact_information.strip(),
        short_bio=draft.short_bio.strip(),
        skills=list(parse_skills(draft.skills)),
        project_descriptions=[p.description.strip() for p in draft.projects if p.description.strip()],
    )


class EnhancementService:
    """Run generation requests without blocking the event loop."""

    def __init__(self, client: LLMClient) -> None:
        self.client = client

    def is_available(self) -> bool:
        return self.client.is_configured()

    async def enhance_bio(self, profile: EnhanceBioInput) -> EnhanceBioOutput:
        prompt = build_enhance_bio_prompt(profile)
        return await self._generate(prompt, EnhanceBioOutput, "enhance_bio")

    async def suggest_project_descriptions(
        self, descriptions: Sequence[str]
    ) -> SuggestProjectDescriptionsOutput:
        request = SuggestProjectDescriptionsInput(project_descriptions=list(descriptions))
        if not request.project_descriptions:
            return SuggestProjectDescriptionsOutput(improved_project_descriptions=[])

        prompt = build_project_descriptions_prompt(request)
        result = await self._generate(
            prompt, SuggestProjectDescriptionsOutput, "suggest_project_descriptions"
        )
        expected = len(request.project_descriptions)
        received = len(result.improved_project_descriptions)
        if received != expected:
            logger.error("Project suggestion count mismatch: expected %d, got %d", expected, received)
            raise ServiceError(
                f"The AI returned {received} project descriptions for {expected} projects. Please try again."
            )
        return result

    async def _generate(self, prompt: str, schema: Type[OutputModel], name: str) -> OutputModel:
        if not self.is_available():
            raise ServiceError(
                "AI features are not configured. Set OPENAI_API_KEY to enable them.",
                code="AI_NOT_CONFIGURED",
            )
        loop = asyncio.get_running_loop()
        call = functools.partial(
            self.client.generate, prompt, schema, name=name, system_prompt=SYSTEM_PROMPT
        )
        try:
            return await loop.run_in_executor(None, call)
        except InvalidAPIKeyError as exc:
            raise ServiceError(str(exc), code="INVALID_API_KEY") from exc
        except LLMError as exc:
            raise ServiceError(str(exc)) from exc


class RequestTracker:
    """Hand out increasing request tokens per field and remember the latest."""

    def __init__(self) -> None:
        self._latest: Dict[str, int] = {}

    def issue(self, field_name: str) -> int:
        token = self._latest.get(field_name, 0) + 1
        self._latest[field_name] = token
        return token

    def latest(self, field_name: str) -> int:
        return self._latest.get(field_name, 0)

    def is_current(self, field_name: str, token: int) -> bool:
        return self._latest.get(field_name) == token


@dataclass(frozen=True, **_DATACLASS_KWARGS)
class Suggestion:
    field: str
    token: int
    value: Any


@dataclass(frozen=True, **_DATACLASS_KWARGS)
class EnhancementOutcome:
    field: str
    token: int
    applied: bool
    value: Any = None
    error: Optional[str] = None


class EnhancementSession:
    """
    Per-form view of AI suggestions.

    Each call carries a token from the tracker; a response is shown only if
    no newer call for the same field has been issued since. Only the event
    loop touches this object, so no locking is involved.
    """

    def __init__(self, service: EnhancementService) -> None:
        self.service = service
        self.tracker = RequestTracker()
        self._suggestions: Dict[str, Suggestion] = {}

    async def enhance_bio(self, profile: EnhanceBioInput) -> EnhancementOutcome:
        token = self.tracker.issue(BIO_FIELD)
        try:
            result = await self.service.enhance_bio(profile)
        except ServiceError as exc:
            return self._fail(BIO_FIELD, token, exc)
        return self._apply(BIO_FIELD, token, result.enhanced_bio)

    async def suggest_project_descriptions(self, descriptions: Sequence[str]) -> EnhancementOutcome:
        token = self.tracker.issue(PROJECTS_FIELD)
        try:
            result = await self.service.suggest_project_descriptions(descriptions)
        except ServiceError as exc:
            return self._fail(PROJECTS_FIELD, token, exc)
        return self._apply(PROJECTS_FIELD, token, list(result.improved_project_descriptions))

    def suggestion(self, field_name: str) -> Any:
        entry = self._suggestions.get(field_name)
        return entry.value if entry else None

    def suggestions(self) -> Dict[str, Suggestion]:
        return dict(self._suggestions)

    def dismiss(self, field_name: str) -> None:
        if field_name not in ENHANCEABLE_FIELDS:
            raise KeyError(f"Unknown enhancement field: {field_name}")
        self._suggestions.pop(field_name, None)

    def _apply(self, field_name: str, token: int, value: Any) -> EnhancementOutcome:
        if not self.tracker.is_current(field_name, token):
            logger.warning(
                "Discarding stale %s suggestion (token %d, latest %d)",
                field_name,
                token,
                self.tracker.latest(field_name),
            )
            return EnhancementOutcome(field=field_name, token=token, applied=False, value=value)
        self._suggestions[field_name] = Suggestion(field=field_name, token=token, value=value)
        logger.info("Applied %s suggestion (token %d)", field_name, token)
        return EnhancementOutcome(field=field_name, token=token, applied=True, value=value)

    def _fail(self, field_name: str, token: int, exc: ServiceError) -> EnhancementOutcome:
        if self.tracker.is_current(field_name, token):
            logger.error("%s enhancement failed: %s", field_name, exc)
            raise exc
        logger.warning("Stale %s request %d failed: %s", field_name, token, exc)
        return EnhancementOutcome(field=field_name, token=token, applied=False, error=str(exc))


def accept_suggestion(record: PortfolioRecord, field_name: str, value: Any) -> PortfolioRecord:
    """Return a new record with a reviewed suggestion applied."""
    if field_name == BIO_FIELD:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Enhanced bio must be a non-empty string")
        return record.with_short_bio(value.strip())
    if field_name == PROJECTS_FIELD:
        descriptions: List[str] = list(value or [])
        return record.with_project_descriptions(descriptions)
    raise KeyError(f"Unknown enhancement field: {field_name}")
