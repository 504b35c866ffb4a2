"""
Export Service Module

Renders a portfolio record into a self-contained static HTML page or a
paginated PDF. Every export runs through an ExportJob and ends either SAVED
or FAILED; there is no path that finishes without one of the two.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import io
import logging
import re
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional

from PIL import Image, UnidentifiedImageError
from reportlab.lib.pagesizes import A4, LETTER
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas

from ..models.errors import ExportError
from ..models.portfolio import PortfolioRecord

logger = logging.getLogger(__name__)

_DATACLASS_KWARGS = {"slots": True} if sys.version_info >= (3, 10) else {}

SUPPORTED_FORMATS = ("html", "pdf")

_DATA_URI_PATTERN = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?;base64,(?P<data>.*)$", re.DOTALL)


class ExportState(str, Enum):
    IDLE = "idle"
    RENDERING = "rendering"
    SAVED = "saved"
    FAILED = "failed"


_TRANSITIONS = {
    ExportState.IDLE: {ExportState.RENDERING},
    ExportState.RENDERING: {ExportState.SAVED, ExportState.FAILED},
    ExportState.SAVED: set(),
    ExportState.FAILED: set(),
}


@dataclass(**_DATACLASS_KWARGS)
class ExportConfig:
    """Configuration for export generation."""

    page_size: str = "A4"  # A4, LETTER
    margin: float = 50.0
    line_height: float = 16.0
    body_font_size: float = 11.0
    heading_font_size: float = 14.0
    title_font_size: float = 22.0
    photo_max_size: float = 120.0
    include_photo: bool = True


@dataclass(**_DATACLASS_KWARGS)
class ExportResult:
    """Result of an export operation."""

    state: ExportState
    format: str = "html"
    file_path: Optional[Path] = None
    error: Optional[str] = None
    file_size_bytes: int = 0

    @property
    def success(self) -> bool:
        return self.state is ExportState.SAVED


class ExportJob:
    """Tracks one export through Idle -> Rendering -> Saved | Failed."""

    def __init__(self, fmt: str) -> None:
        self.format = fmt
        self.state = ExportState.IDLE
        self.history: List[ExportState] = [ExportState.IDLE]

    def _move(self, new_state: ExportState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal export transition {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append(new_state)

    def start(self) -> None:
        self._move(ExportState.RENDERING)

    def saved(self, path: Path, size: int) -> ExportResult:
        self._move(ExportState.SAVED)
        logger.info("Exported %s to %s (%d bytes)", self.format, path, size)
        return ExportResult(state=self.state, format=self.format, file_path=path, file_size_bytes=size)

    def failed(self, message: str) -> ExportResult:
        if self.state is ExportState.IDLE:
            self._move(ExportState.RENDERING)
        self._move(ExportState.FAILED)
        logger.error("%s export failed: %s", self.format.upper(), message)
        return ExportResult(state=self.state, format=self.format, error=message)


def html_filename(name: str) -> str:
    slug = re.sub(r"\s+", "-", name.strip().lower())
    slug = re.sub(r"[\\/]", "-", slug)
    return f"portfolio-{slug or 'portfolio'}.html"


def pdf_filename(name: str) -> str:
    safe = re.sub(r'[\\/:*?"<>|]', "-", name.strip())
    return f"{safe or 'portfolio'}-portfolio.pdf"


def decode_photo(photo: str) -> Image.Image:
    """Decode a data URI into a loaded Pillow image."""
    match = _DATA_URI_PATTERN.match(photo or "")
    if not match:
        raise ExportError("Photo is not a base64 data URI")
    try:
        data = base64.b64decode(match.group("data"), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ExportError(f"Photo data is not valid base64: {exc}") from exc
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise ExportError(f"Photo could not be decoded: {exc}") from exc
    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    return image


class ExportService:
    """Service for rendering portfolio records to HTML and PDF files."""

    def __init__(self, config: Optional[ExportConfig] = None):
        self.config = config or ExportConfig()

    # ------------------------------------------------------------------ #
    # Dispatch
    # ------------------------------------------------------------------ #

    async def export(self, record: PortfolioRecord, fmt: str, output_dir: Path) -> ExportResult:
        fmt = (fmt or "").lower()
        if fmt == "html":
            return self.export_html(record, output_dir)
        if fmt == "pdf":
            return await self.export_pdf_async(record, output_dir)
        return ExportJob(fmt).failed(
            f"Unsupported export format '{fmt}'. Choose one of: {', '.join(SUPPORTED_FORMATS)}"
        )

    # ------------------------------------------------------------------ #
    # HTML
    # ------------------------------------------------------------------ #

    def export_html(self, record: PortfolioRecord, output_dir: Path) -> ExportResult:
        """
        Write the static HTML page for a record.

        Args:
            record: The portfolio to export
            output_dir: Directory that receives portfolio-<slug>.html

        Returns:
            ExportResult in state SAVED or FAILED
        """
        job = ExportJob("html")
        missing = record.missing_fields()
        if missing:
            return job.failed("Portfolio is incomplete. Missing: " + ", ".join(missing))

        job.start()
        try:
            html_content = self.render_html(record)
            output_path = Path(output_dir) / html_filename(record.name)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            data = html_content.encode("utf-8")
            output_path.write_bytes(data)
        except OSError as exc:
            return job.failed(f"Could not write HTML file: {exc}")
        return job.saved(output_path, len(data))

    def render_html(self, record: PortfolioRecord) -> str:
        """Render the complete HTML document. Same record, same bytes."""
        esc = self._escape_html
        photo = ""
        if record.photo and self.config.include_photo:
            photo = f'<img class="photo" src="{esc(record.photo)}" alt="{esc(record.name)}">\n'

        skills = "".join(f"<li>{esc(skill)}</li>" for skill in record.skills)
        projects = "".join(
            f"<li><h4>{esc(project.name)}</h4><p>{esc(project.description)}</p></li>"
            for project in record.projects
        )

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Portfolio - {esc(record.name)}</title>
<style>
body {{ font-family: Arial, Helvetica, sans-serif; margin: 0; background: #f7f7f8; color: #1f2937; }}
.portfolio {{ max-width: 760px; margin: 32px auto; background: #ffffff; border-radius: 12px; box-shadow: 0 1px 3px rgba(0, 0, 0, 0.1); }}
.profile-section {{ padding: 24px; border-bottom: 1px solid #e5e7eb; }}
.profile-section h1 {{ margin: 0 0 4px; font-size: 2rem; }}
.profile-section h2 {{ margin: 0 0 12px; font-size: 1.15rem; font-weight: normal; color: #4b5563; }}
.photo {{ float: right; width: 96px; height: 96px; object-fit: cover; border-radius: 50%; }}
.meta {{ margin: 2px 0; color: #4b5563; }}
.about-section, .skills-section, .projects-section {{ padding: 20px 24px; }}
.about-section p {{ white-space: pre-line; line-height: 1.5; }}
.skills-section ul {{ list-style: none; padding: 0; display: flex; flex-wrap: wrap; gap: 8px; }}
.skills-section li {{ background: #eef2ff; color: #4338ca; padding: 4px 12px; border-radius: 999px; }}
.projects-section ul {{ padding-left: 20px; }}
.projects-section h4 {{ margin: 12px 0 4px; }}
.projects-section p {{ margin: 0; line-height: 1.5; white-space: pre-line; }}
</style>
</head>
<body>
<main class="portfolio">
<header class="profile-section">
{photo}<h1>{esc(record.name)}</h1>
<h2>{esc(record.occupation)}</h2>
<p class="meta">Age: {record.age}</p>
<p class="meta">Contact: {esc(record.contact_information)}</p>
</header>
<section class="about-section">
<h3>About Me</h3>
<p>{esc(record.short_bio)}</p>
</section>
<section class="skills-section">
<h3>Skills</h3>
<ul>{skills}</ul>
</section>
<section class="projects-section">
<h3>Projects</h3>
<ul>{projects}</ul>
</section>
</main>
</body>
</html>
"""

    # ------------------------------------------------------------------ #
    # PDF
    # ------------------------------------------------------------------ #

    def export_pdf(self, record: PortfolioRecord, output_dir: Path) -> ExportResult:
        """Render and write the PDF, decoding the photo inline."""
        job = ExportJob("pdf")
        missing = record.missing_fields()
        if missing:
            return job.failed("Portfolio is incomplete. Missing: " + ", ".join(missing))

        job.start()
        try:
            photo = self._photo_for(record)
            return self._write_pdf(job, record, photo, output_dir)
        except ExportError as exc:
            return job.failed(str(exc))
        except Exception as exc:
            logger.exception("Unexpected PDF export failure")
            return job.failed(f"Unexpected PDF export failure: {exc}")

    async def export_pdf_async(self, record: PortfolioRecord, output_dir: Path) -> ExportResult:
        """Like export_pdf, but photo decoding and rendering run in the executor."""
        job = ExportJob("pdf")
        missing = record.missing_fields()
        if missing:
            return job.failed("Portfolio is incomplete. Missing: " + ", ".join(missing))

        job.start()
        loop = asyncio.get_running_loop()
        try:
            photo = await loop.run_in_executor(None, self._photo_for, record)
            return await loop.run_in_executor(None, self._write_pdf, job, record, photo, output_dir)
        except ExportError as exc:
            return job.failed(str(exc))
        except Exception as exc:
            logger.exception("Unexpected PDF export failure")
            return job.failed(f"Unexpected PDF export failure: {exc}")

    def render_pdf(self, record: PortfolioRecord, photo: Optional[Image.Image] = None) -> bytes:
        """Lay out the record on fixed-size pages and return the PDF bytes."""
        buffer = io.BytesIO()
        page_size = LETTER if self.config.page_size.upper() == "LETTER" else A4
        pdf = canvas.Canvas(buffer, pagesize=page_size, invariant=1)
        pdf.setTitle(f"Portfolio - {record.name}")
        pdf.setAuthor(record.name)

        layout = _PageLayout(pdf, page_size, self.config)

        # Header block
        layout.paragraph(record.name, font="Helvetica-Bold", size=self.config.title_font_size)
        layout.paragraph(record.occupation, size=self.config.heading_font_size)
        layout.write(f"Age: {record.age}")
        layout.paragraph(f"Contact: {record.contact_information}")
        layout.gap()

        layout.heading("About Me")
        layout.paragraph(record.short_bio)
        layout.gap()

        layout.heading("Skills")
        layout.paragraph(", ".join(record.skills))
        layout.gap()

        layout.heading("Projects")
        for project in record.projects:
            layout.paragraph(project.name, font="Helvetica-Bold")
            layout.paragraph(project.description)
            layout.gap()

        if photo is not None:
            layout.image(photo)

        pdf.showPage()
        pdf.save()
        return buffer.getvalue()

    def _photo_for(self, record: PortfolioRecord) -> Optional[Image.Image]:
        if not record.photo or not self.config.include_photo:
            return None
        return decode_photo(record.photo)

    def _write_pdf(
        self,
        job: ExportJob,
        record: PortfolioRecord,
        photo: Optional[Image.Image],
        output_dir: Path,
    ) -> ExportResult:
        try:
            data = self.render_pdf(record, photo)
        except Exception as exc:
            raise ExportError(f"Could not render PDF: {exc}") from exc
        output_path = Path(output_dir) / pdf_filename(record.name)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_bytes(data)
        except OSError as exc:
            raise ExportError(f"Could not write PDF file: {exc}") from exc
        return job.saved(output_path, len(data))

    @staticmethod
    def _escape_html(text: str) -> str:
        """Escape HTML special characters."""
        return (
            str(text)
            .replace("&", "&amp;")
            .replace("<", "&lt;")
            .replace(">", "&gt;")
            .replace('"', "&quot;")
            .replace("'", "&#x27;")
        )


class _PageLayout:
    """Top-down cursor over reportlab pages; starts a new page when one fills up."""

    def __init__(self, pdf: canvas.Canvas, page_size, config: ExportConfig) -> None:
        self.pdf = pdf
        self.width, self.height = page_size
        self.config = config
        self.max_width = self.width - 2 * config.margin
        self.y = self.height - config.margin

    def _ensure_room(self, needed: float) -> None:
        if self.y - needed < self.config.margin:
            self.pdf.showPage()
            self.y = self.height - self.config.margin

    def write(self, text: str, *, font: str = "Helvetica", size: Optional[float] = None) -> None:
        size = size or self.config.body_font_size
        # Large fonts need more than one line of clearance.
        advance = max(self.config.line_height, size * 1.3)
        self._ensure_room(advance)
        self.pdf.setFont(font, size)
        self.pdf.drawString(self.config.margin, self.y - size, text)
        self.y -= advance

    def heading(self, text: str) -> None:
        self.write(text, font="Helvetica-Bold", size=self.config.heading_font_size)

    def paragraph(self, text: str, *, font: str = "Helvetica", size: Optional[float] = None) -> None:
        size = size or self.config.body_font_size
        for line in self.wrap(text, font, size):
            self.write(line, font=font, size=size)

    def wrap(self, text: str, font: str, size: float) -> List[str]:
        lines: List[str] = []
        for raw_line in (text or "").splitlines() or [""]:
            lines.extend(simpleSplit(raw_line, font, size, self.max_width) or [""])
        return lines

    def gap(self) -> None:
        self.y -= self.config.line_height / 2

    def image(self, photo: Image.Image) -> None:
        width, height = photo.size
        scale = min(self.config.photo_max_size / width, self.config.photo_max_size / height, 1.0)
        draw_width, draw_height = width * scale, height * scale
        self._ensure_room(draw_height)
        self.pdf.drawImage(
            ImageReader(photo),
            self.config.margin,
            self.y - draw_height,
            width=draw_width,
            height=draw_height,
        )
        self.y -= draw_height + self.config.line_height
