"""Canonical in-memory shape of a portfolio."""

from __future__ import annotations

import sys
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .errors import PersistenceError

_DATACLASS_KWARGS = {"slots": True} if sys.version_info >= (3, 10) else {}

REQUIRED_TEXT_FIELDS = ("name", "occupation", "contact_information", "short_bio")

# Keys used in the stored JSON document.
FIELD_KEYS = {
    "name": "name",
    "age": "age",
    "occupation": "occupation",
    "contact_information": "contactInformation",
    "short_bio": "shortBio",
    "skills": "skills",
    "projects": "projects",
    "photo": "photo",
}


def parse_skills(raw: str) -> Tuple[str, ...]:
    """Split a comma separated skills string into trimmed, non-empty tokens."""
    if not raw:
        return ()
    return tuple(token.strip() for token in raw.split(",") if token.strip())


@dataclass(frozen=True, **_DATACLASS_KWARGS)
class Project:
    name: str
    description: str

    def is_blank(self) -> bool:
        return not self.name.strip() and not self.description.strip()

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "description": self.description}

    @classmethod
    def from_dict(cls, data: Any) -> "Project":
        if not isinstance(data, dict):
            raise PersistenceError(f"Project entry must be an object, got {type(data).__name__}")
        name = data.get("name")
        description = data.get("description")
        if not isinstance(name, str) or not isinstance(description, str):
            raise PersistenceError("Project entries need string 'name' and 'description'")
        return cls(name=name, description=description)


@dataclass(frozen=True, **_DATACLASS_KWARGS)
class PortfolioRecord:
    name: str
    age: int
    occupation: str
    contact_information: str
    short_bio: str
    skills: Tuple[str, ...] = ()
    projects: Tuple[Project, ...] = ()
    photo: Optional[str] = None

    def __post_init__(self) -> None:
        # Accept lists from callers but always hold tuples.
        object.__setattr__(self, "skills", tuple(self.skills))
        object.__setattr__(self, "projects", tuple(self.projects))

    def missing_fields(self) -> List[str]:
        """Fields that keep the record from being exportable."""
        missing = []
        if not self.name.strip():
            missing.append(FIELD_KEYS["name"])
        if not isinstance(self.age, int) or self.age < 0:
            missing.append(FIELD_KEYS["age"])
        missing.extend(
            FIELD_KEYS[attr]
            for attr in REQUIRED_TEXT_FIELDS[1:]
            if not getattr(self, attr).strip()
        )
        if not self.skills:
            missing.append(FIELD_KEYS["skills"])
        if not self.projects:
            missing.append(FIELD_KEYS["projects"])
        return missing

    def is_complete(self) -> bool:
        return not self.missing_fields()

    def project_descriptions(self) -> List[str]:
        return [project.description for project in self.projects]

    def initials(self) -> str:
        return self.name.strip()[:2].upper()

    def with_short_bio(self, short_bio: str) -> "PortfolioRecord":
        return replace(self, short_bio=short_bio)

    def with_project_descriptions(self, descriptions: Sequence[str]) -> "PortfolioRecord":
        descriptions = list(descriptions)
        if len(descriptions) != len(self.projects):
            raise ValueError(
                f"Expected {len(self.projects)} project descriptions, got {len(descriptions)}"
            )
        projects = tuple(
            Project(name=project.name, description=description)
            for project, description in zip(self.projects, descriptions)
        )
        return replace(self, projects=projects)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "age": self.age,
            "occupation": self.occupation,
            "contactInformation": self.contact_information,
            "shortBio": self.short_bio,
            "skills": list(self.skills),
            "projects": [project.to_dict() for project in self.projects],
            "photo": self.photo,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "PortfolioRecord":
        if not isinstance(data, dict):
            raise PersistenceError("Stored portfolio must be a JSON object")

        missing = [key for key in FIELD_KEYS.values() if key != "photo" and key not in data]
        if missing:
            raise PersistenceError("Stored portfolio is missing keys: " + ", ".join(missing))

        text_values = {}
        for attr in REQUIRED_TEXT_FIELDS:
            value = data[FIELD_KEYS[attr]]
            if not isinstance(value, str):
                raise PersistenceError(f"'{FIELD_KEYS[attr]}' must be a string")
            text_values[attr] = value

        age = data["age"]
        if isinstance(age, bool) or not isinstance(age, int):
            raise PersistenceError("'age' must be an integer")
        if age < 0:
            raise PersistenceError("'age' must not be negative")
        if not text_values["name"].strip():
            raise PersistenceError("'name' must not be empty")

        skills = data["skills"]
        if not isinstance(skills, list) or not all(isinstance(s, str) for s in skills):
            raise PersistenceError("'skills' must be a list of strings")

        projects = data["projects"]
        if not isinstance(projects, list):
            raise PersistenceError("'projects' must be a list")

        photo = data.get("photo")
        if photo is not None and not isinstance(photo, str):
            raise PersistenceError("'photo' must be a data URI string")

        return cls(
            age=age,
            skills=tuple(skills),
            projects=tuple(Project.from_dict(entry) for entry in projects),
            photo=photo or None,
            **text_values,
        )
