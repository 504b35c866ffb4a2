# AI Enhancement API Routes
# Bio and project description suggestions. Suggestions are held for review
# and only written to the portfolio through /api/portfolio/accept/{field}.

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Response, status

from ..services.capture_service import FormDraft
from ..services.enhancement_service import (
    BIO_FIELD,
    ENHANCEABLE_FIELDS,
    PROJECTS_FIELD,
    profile_from_draft,
    profile_from_record,
)
from .dependencies import AppServices, get_services
from .models.portfolio_models import (
    EnhanceBioResponse,
    ErrorResponse,
    PortfolioPayload,
    SuggestionsResponse,
    SuggestProjectDescriptionsRequest,
    SuggestProjectDescriptionsResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/ai", tags=["AI"])

_SERVICE_ERRORS = {
    502: {"model": ErrorResponse, "description": "The AI service failed"},
    503: {"model": ErrorResponse, "description": "AI features are not configured"},
}


@router.post("/enhance-bio", response_model=EnhanceBioResponse, responses=_SERVICE_ERRORS)
async def enhance_bio(
    payload: Optional[PortfolioPayload] = Body(None),
    services: AppServices = Depends(get_services),
):
    """
    Ask the model for an improved bio.

    With a body, the bio is built from that unsaved form state; without one
    the stored portfolio is used. ``applied`` is false when a newer request
    for the bio was issued while this one was in flight.
    """
    if payload is not None:
        profile = profile_from_draft(FormDraft.from_mapping(payload.model_dump(by_alias=True)))
    else:
        record = services.storage.load()
        if record is None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="No portfolio has been saved yet",
            )
        profile = profile_from_record(record)

    outcome = await services.session.enhance_bio(profile)
    return EnhanceBioResponse(
        enhanced_bio=outcome.value,
        request_token=outcome.token,
        applied=outcome.applied,
    )


@router.post(
    "/suggest-project-descriptions",
    response_model=SuggestProjectDescriptionsResponse,
    responses=_SERVICE_ERRORS,
)
async def suggest_project_descriptions(
    request: Optional[SuggestProjectDescriptionsRequest] = Body(None),
    services: AppServices = Depends(get_services),
):
    descriptions = request.project_descriptions if request is not None else None
    if descriptions is None:
        record = services.storage.load()
        if record is None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="No portfolio has been saved yet",
            )
        descriptions = list(record.project_descriptions())

    outcome = await services.session.suggest_project_descriptions(descriptions)
    return SuggestProjectDescriptionsResponse(
        improved_project_descriptions=outcome.value,
        request_token=outcome.token,
        applied=outcome.applied,
    )


@router.get("/suggestions", response_model=SuggestionsResponse)
def get_suggestions(services: AppServices = Depends(get_services)):
    return SuggestionsResponse(
        bio=services.session.suggestion(BIO_FIELD),
        projects=services.session.suggestion(PROJECTS_FIELD),
    )


@router.delete("/suggestions/{field_name}", status_code=status.HTTP_204_NO_CONTENT)
def dismiss_suggestion(field_name: str, services: AppServices = Depends(get_services)):
    if field_name not in ENHANCEABLE_FIELDS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown field '{field_name}'")
    services.session.dismiss(field_name)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
