"""FastAPI application exposing the extraction engine over HTTP.

Clients send recognized document text and receive the canonical record,
the destination record for the detected type, or a reconciliation report.
"""

import time
import uuid
from pathlib import Path
from typing import Annotated, Any

from fastapi import Body, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from chohyo import __version__
from chohyo.extraction.builder import DocumentExtractor
from chohyo.extraction.document import CanonicalDocument, DocumentType
from chohyo.projection import schemas as destination
from chohyo.projection.projector import project
from chohyo.utils.config import load_config
from chohyo.utils.logger import get_logger
from chohyo.validation.rules_engine import RulesEngine, ValidationReport

from .schemas import (
    DocumentTypeInfo,
    DocumentTypesResponse,
    ExtractionResponse,
    ExtractRequest,
    HealthResponse,
    OutputSchema,
    ValidationResponse,
    ValidationResultResponse,
)

logger = get_logger(__name__)

app = FastAPI(
    title="Business Document Extraction API",
    description="Extract structured records from delivery slips, invoices, "
    "purchase orders and quotations",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_TYPE_INFO: dict[DocumentType, tuple[str, type]] = {
    DocumentType.DELIVERY: ("Delivery slip (納品書)", destination.DeliveryRecord),
    DocumentType.INVOICE: ("Invoice (請求書)", destination.InvoiceRecord),
    DocumentType.ORDER: ("Purchase order (注文書)", destination.OrderRecord),
    DocumentType.QUOTATION: ("Quotation (見積書)", destination.QuotationRecord),
}


def _get_components() -> tuple[DocumentExtractor, RulesEngine]:
    """Build the extractor and rules engine from configuration."""
    config = load_config()
    extractor = DocumentExtractor(config.extraction)
    rules_engine = RulesEngine(
        Path(config.validation.rules_path), config.validation.amount_tolerance
    )
    return extractor, rules_engine


def _validation_response(report: ValidationReport) -> list[ValidationResultResponse]:
    return [
        ValidationResultResponse(
            field_name=r.field_name,
            is_valid=r.is_valid,
            message=r.message,
            rule_name=r.rule_name,
        )
        for r in report.results
    ]


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return service health status."""
    return HealthResponse(status="healthy", version=__version__)


@app.get("/document-types", response_model=DocumentTypesResponse)
async def list_document_types() -> DocumentTypesResponse:
    """List supported document types and their destination fields."""
    return DocumentTypesResponse(
        document_types=[
            DocumentTypeInfo(
                name=document_type.value,
                description=description,
                destination_fields=list(record_type.model_fields),
            )
            for document_type, (description, record_type) in _TYPE_INFO.items()
        ]
    )


@app.post("/extract", response_model=ExtractionResponse)
async def extract_document(
    request: ExtractRequest,
    schema: Annotated[OutputSchema, Query()] = OutputSchema.BOTH,
) -> ExtractionResponse:
    """Extract a record from recognized document text.

    Args:
        request: Recognized text and acquisition metadata.
        schema: Which record shape(s) to include in the response.
    """
    start_time = time.time()
    if request.used_fallback_recognition:
        logger.info("Text was produced by fallback image recognition")

    try:
        extractor, rules_engine = _get_components()
        document = extractor.extract(request.text)
        report = rules_engine.validate(document)
    except Exception as exc:
        logger.error("Extraction failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    include_canonical = schema in (OutputSchema.CANONICAL, OutputSchema.BOTH)
    include_record = schema in (OutputSchema.DESTINATION, OutputSchema.BOTH)

    return ExtractionResponse(
        success=True,
        document_id=str(uuid.uuid4()),
        document_type=document.document_type.value,
        item_count=len(document.items),
        document=document.to_dict() if include_canonical else None,
        record=project(document).model_dump(mode="json") if include_record else None,
        validation=_validation_response(report),
        processing_time_ms=(time.time() - start_time) * 1000,
    )


@app.post("/project")
async def project_document(
    document: Annotated[dict[str, Any], Body()],
) -> dict[str, Any]:
    """Reshape a (possibly hand-corrected) canonical record."""
    try:
        record = project(CanonicalDocument.from_dict(document))
    except (KeyError, TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return record.model_dump(mode="json")


@app.post("/validate", response_model=ValidationResponse)
async def validate_document(request: ExtractRequest) -> ValidationResponse:
    """Extract a record and return only its reconciliation report."""
    extractor, rules_engine = _get_components()
    document = extractor.extract(request.text)
    report = rules_engine.validate(document)
    return ValidationResponse(
        document_type=document.document_type.value,
        all_valid=report.all_valid,
        results=_validation_response(report),
        warnings=report.warnings,
    )
