"""Pydantic request/response schemas for the FastAPI endpoints."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel


class OutputSchema(StrEnum):
    """Record shape returned by the extraction endpoint."""

    CANONICAL = "canonical"
    DESTINATION = "destination"
    BOTH = "both"


class ExtractRequest(BaseModel):
    """Recognized text of one document."""

    text: str
    used_fallback_recognition: bool = False


class ValidationResultResponse(BaseModel):
    """Response schema for a validation check result."""

    field_name: str
    is_valid: bool
    message: str
    rule_name: str


class ExtractionResponse(BaseModel):
    """Response schema for a document extraction request."""

    success: bool
    document_id: str
    document_type: str
    item_count: int
    document: dict[str, Any] | None = None
    record: dict[str, Any] | None = None
    validation: list[ValidationResultResponse]
    processing_time_ms: float


class ValidationResponse(BaseModel):
    """Response schema for a reconciliation request."""

    document_type: str
    all_valid: bool
    results: list[ValidationResultResponse]
    warnings: list[str]


class DocumentTypeInfo(BaseModel):
    """A supported document type and its destination record fields."""

    name: str
    description: str
    destination_fields: list[str]


class DocumentTypesResponse(BaseModel):
    """Response schema listing supported document types."""

    document_types: list[DocumentTypeInfo]


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
