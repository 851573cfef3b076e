from __future__ import annotations

from typing import Any, Dict, List, Optional


class BrandPulseError(Exception):
    """Base for errors that map onto an HTTP response."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> Dict[str, Any]:
        return {"message": self.message}


class ValidationError(BrandPulseError):
    status_code = 400

    def __init__(self, message: str, errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, errors=[{"field": field, "message": message}])

    def to_payload(self) -> Dict[str, Any]:
        return {"message": self.message, "errors": self.errors}


class NotFoundError(BrandPulseError):
    status_code = 404


class ClassificationError(BrandPulseError):
    status_code = 500


class StorageError(BrandPulseError):
    status_code = 500
