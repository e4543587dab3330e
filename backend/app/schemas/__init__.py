"""Pydantic schemas for API requests and responses."""

from app.schemas.common import ApiResponse, ErrorResponse
from app.schemas.note import NoteOpen, VersionSummary, VersionDetail, Collection

__all__ = [
    "ApiResponse",
    "ErrorResponse",
    "NoteOpen",
    "VersionSummary",
    "VersionDetail",
    "Collection",
]
