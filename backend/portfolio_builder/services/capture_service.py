"""
Form Capture Service

Turns raw form input into a validated PortfolioRecord. The form itself is
modelled as an immutable FormDraft: every edit returns a new draft, and
validation happens only when the draft is submitted.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import io
import logging
import sys
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from PIL import Image, UnidentifiedImageError

from ..models.errors import PhotoReadError, ValidationError
from ..models.portfolio import FIELD_KEYS, PortfolioRecord, Project, parse_skills

logger = logging.getLogger(__name__)

_DATACLASS_KWARGS = {"slots": True} if sys.version_info >= (3, 10) else {}

SCALAR_FIELDS = ("name", "age", "occupation", "contact_information", "short_bio", "skills")

DEFAULT_MAX_PHOTO_BYTES = 5 * 1024 * 1024


@dataclass(frozen=True, **_DATACLASS_KWARGS)
class FormDraft:
    """Raw, unvalidated form state."""

    name: str = ""
    age: str = ""
    occupation: str = ""
    contact_information: str = ""
    short_bio: str = ""
    skills: str = ""
    projects: Tuple[Project, ...] = ()
    photo: Optional[str] = None

    def with_field(self, field_name: str, value: str) -> "FormDraft":
        if field_name not in SCALAR_FIELDS:
            raise KeyError(f"Unknown form field: {field_name}")
        return replace(self, **{field_name: "" if value is None else str(value)})

    def with_project_added(self) -> "FormDraft":
        return replace(self, projects=self.projects + (Project(name="", description=""),))

    def with_project(
        self,
        index: int,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> "FormDraft":
        current = self.projects[index]
        updated = Project(
            name=current.name if name is None else name,
            description=current.description if description is None else description,
        )
        projects = list(self.projects)
        projects[index] = updated
        return replace(self, projects=tuple(projects))

    def with_project_removed(self, index: int) -> "FormDraft":
        projects = list(self.projects)
        del projects[index]
        return replace(self, projects=tuple(projects))

    def with_photo(self, photo: Optional[str]) -> "FormDraft":
        return replace(self, photo=photo or None)

    @classmethod
    def from_record(cls, record: PortfolioRecord) -> "FormDraft":
        """Pre-fill the form from a stored record ("Edit details")."""
        return cls(
            name=record.name,
            age=str(record.age),
            occupation=record.occupation,
            contact_information=record.contact_information,
            short_bio=record.short_bio,
            skills=", ".join(record.skills),
            projects=tuple(record.projects),
            photo=record.photo,
        )

    @classmethod
    def from_mapping(cls, data: Dict[str, object]) -> "FormDraft":
        """Build a draft from a mapping keyed by the stored (camelCase) names."""
        values = {}
        for attr in SCALAR_FIELDS:
            raw = data.get(FIELD_KEYS[attr], data.get(attr, ""))
            if attr == "skills" and isinstance(raw, (list, tuple)):
                raw = ", ".join(str(item) for item in raw)
            values[attr] = "" if raw is None else str(raw)

        projects = []
        for entry in data.get("projects") or []:
            if isinstance(entry, dict):
                projects.append(
                    Project(
                        name=str(entry.get("name") or ""),
                        description=str(entry.get("description") or ""),
                    )
                )
        photo = data.get("photo")
        return cls(projects=tuple(projects), photo=str(photo) if photo else None, **values)


class CaptureService:
    """Validate submitted drafts and produce portfolio records."""

    def __init__(
        self,
        *,
        require_photo: bool = True,
        max_photo_bytes: int = DEFAULT_MAX_PHOTO_BYTES,
    ) -> None:
        self.require_photo = require_photo
        self.max_photo_bytes = max_photo_bytes

    def capture(self, draft: FormDraft) -> PortfolioRecord:
        """
        Validate a submitted draft.

        Raises:
            ValidationError: listing every missing or invalid field
        """
        missing: List[str] = []
        invalid: Dict[str, str] = {}

        for attr in SCALAR_FIELDS:
            if not getattr(draft, attr).strip():
                missing.append(FIELD_KEYS[attr])

        age = None
        if draft.age.strip():
            age = _parse_age(draft.age)
            if age is None:
                invalid["age"] = "must be a non-negative whole number"

        skills = parse_skills(draft.skills)
        if draft.skills.strip() and not skills:
            invalid["skills"] = "must contain at least one skill"

        if not draft.projects:
            missing.append("projects")
        for index, project in enumerate(draft.projects):
            if not project.name.strip():
                missing.append(f"projects[{index}].name")
            if not project.description.strip():
                missing.append(f"projects[{index}].description")

        if self.require_photo and not draft.photo:
            missing.append("photo")

        if missing or invalid:
            logger.info("Portfolio submission rejected: missing=%s invalid=%s", missing, list(invalid))
            raise ValidationError(missing_fields=missing, invalid_fields=invalid)

        return PortfolioRecord(
            name=draft.name.strip(),
            age=age,
            occupation=draft.occupation.strip(),
            contact_information=draft.contact_information.strip(),
            short_bio=draft.short_bio.strip(),
            skills=skills,
            projects=tuple(
                Project(name=p.name.strip(), description=p.description.strip())
                for p in draft.projects
            ),
            photo=draft.photo or None,
        )

    async def capture_submission(
        self,
        draft: FormDraft,
        photo_source: Optional[Union[str, Path]] = None,
    ) -> PortfolioRecord:
        """Read the selected photo (if any) and then validate the draft."""
        if photo_source is not None:
            photo = await self.read_photo(photo_source)
            draft = draft.with_photo(photo)
        return self.capture(draft)

    async def read_photo(self, path: Union[str, Path]) -> str:
        """Read an image file off the event loop and return it as a data URI."""
        loop = asyncio.get_running_loop()
        try:
            data = await loop.run_in_executor(None, Path(path).read_bytes)
        except FileNotFoundError:
            raise PhotoReadError(f"file not found: {path}")
        except OSError as exc:
            raise PhotoReadError(f"could not read {path}: {exc}") from exc
        return await self.read_photo_bytes(data, filename=str(path))

    async def read_photo_data_uri(self, uri: str) -> str:
        """Check a photo that arrives already encoded (JSON API, stored drafts)."""
        header, sep, payload = (uri or "").partition(",")
        if not sep or not header.startswith("data:") or not header.endswith(";base64"):
            raise PhotoReadError("photo must be a base64 data URI")
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise PhotoReadError(f"photo data is not valid base64 ({exc})") from exc
        return await self.read_photo_bytes(data)

    async def read_photo_bytes(
        self,
        data: bytes,
        filename: str = "",
        content_type: Optional[str] = None,
    ) -> str:
        """Encode uploaded image bytes as a data URI once Pillow accepts them."""
        if not data:
            raise PhotoReadError("the selected file is empty")
        if len(data) > self.max_photo_bytes:
            raise PhotoReadError(
                f"file is larger than {self.max_photo_bytes // (1024 * 1024)} MB"
            )
        loop = asyncio.get_running_loop()
        mime_type = await loop.run_in_executor(None, _sniff_image_mime, data, filename)
        if content_type and content_type.startswith("image/") and content_type != mime_type:
            logger.debug("Declared type %s differs from detected %s", content_type, mime_type)
        return encode_data_uri(data, mime_type)


def encode_data_uri(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def _sniff_image_mime(data: bytes, filename: str = "") -> str:
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.verify()
            image_format = image.format
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as exc:
        label = filename or "upload"
        raise PhotoReadError(f"{label} is not a readable image ({exc})") from exc
    mime_type = Image.MIME.get(image_format or "")
    if not mime_type:
        raise PhotoReadError(f"unsupported image format: {image_format}")
    return mime_type


def _parse_age(raw: str) -> Optional[int]:
    text = raw.strip()
    if not (text.isascii() and text.isdigit()):
        return None
    return int(text)
