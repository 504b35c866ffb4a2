from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ...models.portfolio import PortfolioRecord


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ProjectPayload(_CamelModel):
    name: str = ""
    description: str = ""


class PortfolioPayload(_CamelModel):
    """Raw form input; validation happens in the capture service, not here."""

    name: str = ""
    age: Optional[Union[int, str]] = None
    occupation: str = ""
    contact_information: str = Field("", alias="contactInformation")
    short_bio: str = Field("", alias="shortBio")
    skills: Union[str, List[str]] = Field("", description="Comma separated string or list of skills")
    projects: List[ProjectPayload] = Field(default_factory=list)
    photo: Optional[str] = Field(None, description="Image as a base64 data URI")


class PortfolioResponse(_CamelModel):
    name: str
    age: int
    occupation: str
    contact_information: str = Field(..., alias="contactInformation")
    short_bio: str = Field(..., alias="shortBio")
    skills: List[str]
    projects: List[ProjectPayload]
    photo: Optional[str] = None
    complete: bool = True

    @classmethod
    def from_record(cls, record: PortfolioRecord) -> "PortfolioResponse":
        return cls(
            complete=record.is_complete(),
            **record.to_dict(),
        )


class ErrorResponse(BaseModel):
    """Standard error response."""
    detail: str
    error_code: Optional[str] = None
    missing_fields: List[str] = Field(default_factory=list)
    invalid_fields: dict = Field(default_factory=dict)


class EnhanceBioResponse(_CamelModel):
    enhanced_bio: Optional[str] = Field(None, alias="enhancedBio")
    request_token: int = Field(..., alias="requestToken")
    applied: bool


class SuggestProjectDescriptionsRequest(_CamelModel):
    project_descriptions: Optional[List[str]] = Field(None, alias="projectDescriptions")


class SuggestProjectDescriptionsResponse(_CamelModel):
    improved_project_descriptions: Optional[List[str]] = Field(None, alias="improvedProjectDescriptions")
    request_token: int = Field(..., alias="requestToken")
    applied: bool


class SuggestionsResponse(_CamelModel):
    bio: Optional[str] = None
    projects: Optional[List[str]] = None
