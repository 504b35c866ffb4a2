"""Request/response schemas and prompt text for the generation service."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field

SYSTEM_PROMPT = (
    "You are an assistant that helps people write their personal portfolio. "
    "Keep the author's facts, write in the first person, and never invent "
    "employers, degrees or achievements."
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class EnhanceBioInput(_CamelModel):
    name: str = Field(..., description="The name of the person.")
    age: int = Field(..., ge=0, description="The age of the person.")
    occupation: str = Field(..., description="The occupation of the person.")
    contact_information: str = Field(..., alias="contactInformation", description="Contact details.")
    short_bio: str = Field(..., alias="shortBio", description="The bio to rewrite.")
    skills: List[str] = Field(default_factory=list, description="A list of skills.")
    project_descriptions: List[str] = Field(
        default_factory=list,
        alias="projectDescriptions",
        description="Descriptions of the person's projects.",
    )


class EnhanceBioOutput(_CamelModel):
    enhanced_bio: str = Field(..., alias="enhancedBio", description="The AI-enhanced bio.")


class SuggestProjectDescriptionsInput(_CamelModel):
    project_descriptions: List[str] = Field(
        ...,
        alias="projectDescriptions",
        description="A list of project descriptions to improve.",
    )


class SuggestProjectDescriptionsOutput(_CamelModel):
    improved_project_descriptions: List[str] = Field(
        ...,
        alias="improvedProjectDescriptions",
        description="A list of AI-suggested improvements for each project description.",
    )


def build_enhance_bio_prompt(profile: EnhanceBioInput) -> str:
    skills = ", ".join(profile.skills) or "(none listed)"
    projects = "\n".join(f"- {desc}" for desc in profile.project_descriptions) or "- (none listed)"
    return f"""Rewrite the short bio below so it is engaging and professional, highlighting the
person's skills and projects. Keep it under 120 words.

Name: {profile.name}
Age: {profile.age}
Occupation: {profile.occupation}
Contact Information: {profile.contact_information}
Skills: {skills}

Projects:
{projects}

Current bio:
{profile.short_bio}

Return JSON with a single key "enhancedBio" holding the rewritten bio."""


def build_project_descriptions_prompt(request: SuggestProjectDescriptionsInput) -> str:
    numbered = "\n".join(
        f"{index}. {desc}" for index, desc in enumerate(request.project_descriptions, start=1)
    )
    count = len(request.project_descriptions)
    return f"""Improve the following portfolio project descriptions so they showcase
accomplishments and skills more effectively.

Project Descriptions:
{numbered}

Return JSON with the key "improvedProjectDescriptions": a list of exactly {count}
strings, one improved description per original, in the same order."""
