from __future__ import annotations

from typing import Iterable, List, Optional


class PortfolioError(Exception):
    def __init__(self, message: str, code: str) -> None:
        super().__init__(message)
        self.code = code


class ValidationError(PortfolioError):
    """Raised when a submitted form is missing required fields or holds bad values."""

    def __init__(
        self,
        missing_fields: Iterable[str] = (),
        invalid_fields: Optional[dict] = None,
        message: Optional[str] = None,
        code: str = "VALIDATION_ERROR",
    ) -> None:
        self.missing_fields: List[str] = list(missing_fields)
        self.invalid_fields: dict = dict(invalid_fields or {})
        super().__init__(message or self._build_message(), code)

    def _build_message(self) -> str:
        parts = []
        if self.missing_fields:
            parts.append("Missing required fields: " + ", ".join(self.missing_fields))
        for field_name, reason in self.invalid_fields.items():
            parts.append(f"{field_name}: {reason}")
        return "; ".join(parts) or "Invalid portfolio details."

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "message": str(self),
            "missing_fields": list(self.missing_fields),
            "invalid_fields": dict(self.invalid_fields),
        }


class PhotoReadError(ValidationError):
    """Raised when the selected photo cannot be read or is not an image."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            invalid_fields={"photo": reason},
            message=f"Unable to read photo: {reason}",
            code="PHOTO_READ_ERROR",
        )


class ServiceError(PortfolioError):
    """Raised when the text generation service fails."""

    def __init__(self, message: str, code: str = "SERVICE_ERROR") -> None:
        super().__init__(message, code)


class PersistenceError(PortfolioError):
    """Raised when the stored portfolio is unreadable or cannot be written."""

    def __init__(self, message: str, code: str = "PERSISTENCE_ERROR") -> None:
        super().__init__(message, code)


class ExportError(PortfolioError):
    """Raised when an export cannot be rendered or written."""

    def __init__(self, message: str, code: str = "EXPORT_ERROR") -> None:
        super().__init__(message, code)
