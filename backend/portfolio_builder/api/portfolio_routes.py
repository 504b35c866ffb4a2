"""
Portfolio API routes
Save, load, preview, and export the single stored portfolio.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import FileResponse, HTMLResponse

from ..models.portfolio import PortfolioRecord
from ..services.capture_service import FormDraft
from ..services.enhancement_service import ENHANCEABLE_FIELDS, accept_suggestion
from ..services.export_service import SUPPORTED_FORMATS
from ..services.preview_service import build_preview, render_preview_html
from .dependencies import AppServices, get_services
from .models.portfolio_models import ErrorResponse, PortfolioPayload, PortfolioResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/portfolio", tags=["Portfolio"])

_MEDIA_TYPES = {"html": "text/html", "pdf": "application/pdf"}


def _require_record(services: AppServices) -> PortfolioRecord:
    record = services.storage.load()
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="No portfolio has been saved yet",
        )
    return record


@router.get(
    "",
    response_model=PortfolioResponse,
    responses={404: {"model": ErrorResponse}},
)
def get_portfolio(services: AppServices = Depends(get_services)):
    record = services.storage.load()
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No portfolio has been saved yet",
        )
    return PortfolioResponse.from_record(record)


@router.put(
    "",
    response_model=PortfolioResponse,
    responses={422: {"model": ErrorResponse}},
)
async def save_portfolio(payload: PortfolioPayload, services: AppServices = Depends(get_services)):
    """
    Validate and store a portfolio.

    The payload is treated as raw form input; every missing or invalid field
    is reported in one 422 response.
    """
    draft = FormDraft.from_mapping(payload.model_dump(by_alias=True))
    if draft.photo:
        draft = draft.with_photo(await services.capture.read_photo_data_uri(draft.photo))
    record = services.capture.capture(draft)
    services.storage.save(record)
    return PortfolioResponse.from_record(record)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def delete_portfolio(services: AppServices = Depends(get_services)):
    services.storage.clear()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/preview", response_class=HTMLResponse)
def preview_portfolio(services: AppServices = Depends(get_services)):
    record = services.storage.load()
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No portfolio has been saved yet",
        )
    return render_preview_html(build_preview(record))


@router.get(
    "/export/{fmt}",
    responses={409: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def export_portfolio(fmt: str, services: AppServices = Depends(get_services)):
    """Render the stored portfolio and return the written file as a download."""
    fmt = fmt.lower()
    if fmt not in SUPPORTED_FORMATS:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unsupported export format '{fmt}'",
        )
    record = _require_record(services)
    result = await services.exporter.export(
        record, fmt, services.settings.resolved_export_dir
    )
    if not result.success:
        logger.error("%s export failed: %s", fmt.upper(), result.error)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=result.error or "Export failed",
        )
    logger.info("Exported %s to %s (%d bytes)", fmt, result.file_path, result.file_size_bytes)
    return FileResponse(
        result.file_path,
        media_type=_MEDIA_TYPES[fmt],
        filename=result.file_path.name,
    )


@router.post(
    "/accept/{field_name}",
    response_model=PortfolioResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def accept_enhancement(field_name: str, services: AppServices = Depends(get_services)):
    """Apply the current AI suggestion for ``bio`` or ``projects`` to the stored portfolio."""
    if field_name not in ENHANCEABLE_FIELDS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown field '{field_name}'")
    suggestion = services.session.suggestion(field_name)
    if suggestion is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"There is no pending {field_name} suggestion",
        )
    record = _require_record(services)
    try:
        updated = accept_suggestion(record, field_name, suggestion)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    services.storage.save(updated)
    services.session.dismiss(field_name)
    return PortfolioResponse.from_record(updated)

