"""Read-only preview of a portfolio, for the results view and the live form preview."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from html import escape
from typing import List, Optional, Tuple

from ..models.portfolio import PortfolioRecord, parse_skills
from .capture_service import FormDraft

_DATACLASS_KWARGS = {"slots": True} if sys.version_info >= (3, 10) else {}

PLACEHOLDERS = {
    "name": "Your Name",
    "occupation": "Your Occupation",
    "short_bio": "Your Bio",
    "contact_information": "Your Contact Info",
}


@dataclass(frozen=True, **_DATACLASS_KWARGS)
class PreviewProject:
    number: int
    name: str
    description: str

    @property
    def title(self) -> str:
        return self.name or f"Project {self.number}"


@dataclass(frozen=True, **_DATACLASS_KWARGS)
class PortfolioPreview:
    name: str
    occupation: str
    age: Optional[int]
    contact_information: str
    short_bio: str
    skills: Tuple[str, ...] = ()
    projects: Tuple[PreviewProject, ...] = ()
    photo: Optional[str] = None
    initials: str = ""
    is_draft: bool = False
    placeholders: Tuple[str, ...] = ()


def build_preview(record: PortfolioRecord) -> PortfolioPreview:
    return PortfolioPreview(
        name=record.name,
        occupation=record.occupation,
        age=record.age,
        contact_information=record.contact_information,
        short_bio=record.short_bio,
        skills=tuple(record.skills),
        projects=tuple(
            PreviewProject(number=i, name=p.name, description=p.description)
            for i, p in enumerate(record.projects, start=1)
        ),
        photo=record.photo,
        initials=record.initials(),
    )


def build_draft_preview(draft: FormDraft) -> PortfolioPreview:
    """Preview an unsubmitted form, filling empty fields with placeholders."""
    placeholders: List[str] = []

    def value_or_placeholder(attr: str) -> str:
        value = getattr(draft, attr).strip()
        if value:
            return value
        placeholders.append(attr)
        return PLACEHOLDERS[attr]

    name = value_or_placeholder("name")
    age_text = draft.age.strip()
    age = int(age_text) if age_text.isascii() and age_text.isdigit() else None
    projects = tuple(
        PreviewProject(number=i, name=p.name.strip(), description=p.description.strip())
        for i, p in enumerate(draft.projects, start=1)
        if not p.is_blank()
    )
    return PortfolioPreview(
        name=name,
        occupation=value_or_placeholder("occupation"),
        age=age,
        contact_information=value_or_placeholder("contact_information"),
        short_bio=value_or_placeholder("short_bio"),
        skills=parse_skills(draft.skills),
        projects=projects,
        photo=draft.photo,
        initials=name[:2].upper(),
        is_draft=True,
        placeholders=tuple(placeholders),
    )


def render_preview_html(preview: PortfolioPreview) -> str:
    """Render a preview as an HTML fragment. All text is escaped."""
    if preview.photo:
        avatar = f'<img class="avatar" src="{escape(preview.photo)}" alt="{escape(preview.name)}">'
    else:
        avatar = f'<div class="avatar avatar-fallback">{escape(preview.initials)}</div>'

    subtitle = escape(preview.occupation)
    if preview.age is not None:
        subtitle += f" &middot; {preview.age}"

    skills = "".join(f'<span class="chip">{escape(skill)}</span>' for skill in preview.skills)
    projects = "".join(
        "<details class=\"project\">"
        f"<summary>{escape(project.title)}</summary>"
        f"<p>{escape(project.description)}</p>"
        "</details>"
        for project in preview.projects
    )

    return f"""<article class="preview{' preview-draft' if preview.is_draft else ''}">
  <header class="preview-header">
    <div>
      <h2>{escape(preview.name)}</h2>
      <p class="muted">{subtitle}</p>
    </div>
    {avatar}
  </header>
  <section>
    <h3>About Me</h3>
    <p>{escape(preview.short_bio)}</p>
  </section>
  <section>
    <h3>Contact Information</h3>
    <p>{escape(preview.contact_information)}</p>
  </section>
  <section>
    <h3>Skills</h3>
    <div class="chips">{skills}</div>
  </section>
  <section>
    <h3>Projects</h3>
    {projects}
  </section>
</article>"""
