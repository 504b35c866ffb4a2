"""
Browser routes: the capture form and the results page.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from starlette.datastructures import FormData, UploadFile

from ..models.errors import PersistenceError, PhotoReadError, ValidationError
from ..models.portfolio import Project
from ..services.capture_service import FormDraft
from .dependencies import AppServices, get_services
from .views import render_capture_page, render_results_page

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Pages"])


def _draft_from_form(form: FormData) -> FormDraft:
    names: List[str] = [str(value) for value in form.getlist("project_name")]
    descriptions: List[str] = [str(value) for value in form.getlist("project_description")]
    # Pad so a half-filled project row still shows up as a draft project.
    count = max(len(names), len(descriptions))
    names += [""] * (count - len(names))
    descriptions += [""] * (count - len(descriptions))

    existing_photo = form.get("existing_photo")
    return FormDraft(
        name=str(form.get("name") or ""),
        age=str(form.get("age") or ""),
        occupation=str(form.get("occupation") or ""),
        contact_information=str(form.get("contactInformation") or ""),
        short_bio=str(form.get("shortBio") or ""),
        skills=str(form.get("skills") or ""),
        projects=tuple(Project(name=n, description=d) for n, d in zip(names, descriptions)),
        photo=str(existing_photo) if existing_photo else None,
    )


@router.get("/", response_class=HTMLResponse)
def capture_page(services: AppServices = Depends(get_services)):
    """Show the form, pre-filled when a portfolio was saved before."""
    record = services.storage.load()
    if record is not None:
        draft = FormDraft.from_record(record)
    else:
        draft = FormDraft().with_project_added()
    return render_capture_page(draft, ai_enabled=services.enhancement.is_available())


@router.post("/", response_class=HTMLResponse)
async def submit_capture(request: Request, services: AppServices = Depends(get_services)):
    form = await request.form()
    draft = _draft_from_form(form)
    ai_enabled = services.enhancement.is_available()

    upload = form.get("photo")
    if isinstance(upload, UploadFile) and upload.filename:
        data = await upload.read()
        try:
            photo = await services.capture.read_photo_bytes(
                data, upload.filename, upload.content_type
            )
        except PhotoReadError as exc:
            return HTMLResponse(
                render_capture_page(draft, error=exc, ai_enabled=ai_enabled),
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            )
        draft = draft.with_photo(photo)

    if form.get("action") == "add_project":
        return render_capture_page(draft.with_project_added(), ai_enabled=ai_enabled)

    try:
        record = services.capture.capture(draft)
    except ValidationError as exc:
        return HTMLResponse(
            render_capture_page(draft, error=exc, ai_enabled=ai_enabled),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    try:
        services.storage.save(record)
    except PersistenceError as exc:
        logger.error("Could not save portfolio: %s", exc)
        return HTMLResponse(
            render_capture_page(draft, error=exc, ai_enabled=ai_enabled),
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return RedirectResponse("/portfolio", status_code=status.HTTP_303_SEE_OTHER)


@router.get("/portfolio", response_class=HTMLResponse)
def results_page(services: AppServices = Depends(get_services)):
    record = services.storage.load()
    if record is None:
        return RedirectResponse("/", status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    return render_results_page(record)
