"""Canonical record assembly and human-in-the-loop corrections.

Combines the classifier, the field rule table and the line-item parser
into a :class:`CanonicalDocument`. Corrections are single-field or
single-item patches returning a new record; they never recompute derived
values such as line tax.
"""

import dataclasses
from typing import Any

from chohyo.utils.config import ExtractionConfig
from chohyo.utils.logger import get_logger

from .classifier import classify
from .document import (
    BankAccountType,
    CanonicalDocument,
    DocumentDetails,
    DocumentType,
    FractionCalculation,
    LineItem,
    TaxDisplay,
)
from .field_rules import FieldExtractor
from .line_items import LineItemParser

logger = get_logger(__name__)

_DETAIL_FIELDS = ("delivery_date", "delivery_place", "payment_terms")

TYPE_DEFAULTS: dict[DocumentType, dict[str, Any]] = {
    document_type: {
        "consumption_tax_display": TaxDisplay.EXCLUSIVE,
        "fraction_calculation": FractionCalculation.ROUND,
    }
    for document_type in DocumentType
}

_COERCIONS: dict[str, Any] = {
    "document_type": DocumentType,
    "consumption_tax_display": lambda v: TaxDisplay(int(v)),
    "fraction_calculation": lambda v: FractionCalculation(int(v)),
    "bank_account_type": lambda v: None if v is None else BankAccountType(int(v)),
    "details": lambda v: DocumentDetails(**v) if isinstance(v, dict) else v,
}


def build_document(
    text: str,
    field_extractor: FieldExtractor | None = None,
    item_parser: LineItemParser | None = None,
) -> CanonicalDocument:
    """Run the full extraction pipeline over ``text``.

    Args:
        text: Raw document text, retained verbatim as ``raw_text``.
        field_extractor: Field rule engine. Defaults to the standard table.
        item_parser: Line-item parser. Defaults to the standard grammars.

    Returns:
        A freshly built canonical record.
    """
    field_extractor = field_extractor or FieldExtractor()
    item_parser = item_parser or LineItemParser()

    document_type = classify(text)
    values = {
        **TYPE_DEFAULTS[document_type],
        **field_extractor.extract(text, document_type),
    }

    detail_values = {
        name: values.pop(name) for name in _DETAIL_FIELDS if name in values
    }

    return CanonicalDocument(
        document_type=document_type,
        items=item_parser.parse(text),
        details=DocumentDetails(**detail_values) if detail_values else None,
        raw_text=text,
        **values,
    )


class DocumentExtractor:
    """Extraction entry point with run-boundary error handling.

    Args:
        config: Extraction settings.
    """

    def __init__(self, config: ExtractionConfig | None = None) -> None:
        self.config = config or ExtractionConfig()
        self.field_extractor = FieldExtractor()
        self.item_parser = LineItemParser(tax_rate=self.config.tax_rate)

    def extract(
        self, text: str, previous: CanonicalDocument | None = None
    ) -> CanonicalDocument:
        """Extract a canonical record from ``text``.

        An unexpected failure during the run is logged and the previous
        record (or an empty default record) is returned instead of a
        partial result.

        Args:
            text: Raw document text.
            previous: Record to fall back to when the run fails.

        Raises:
            TypeError: If ``text`` is not a string.
        """
        if not isinstance(text, str):
            raise TypeError(f"text must be str, not {type(text).__name__}")

        try:
            document = build_document(text, self.field_extractor, self.item_parser)
        except Exception:
            logger.exception("Extraction run failed, keeping previous record")
            return previous if previous is not None else CanonicalDocument()

        logger.info(
            "Extracted %s document with %d items",
            document.document_type.value,
            len(document.items),
        )
        return document


def reset_document() -> CanonicalDocument:
    """Return an empty record with default settings."""
    return CanonicalDocument()


def replace_field(
    document: CanonicalDocument, field_name: str, value: Any
) -> CanonicalDocument:
    """Return a copy of ``document`` with one scalar field replaced.

    Raises:
        KeyError: If ``field_name`` is not a record field.
        ValueError: If ``field_name`` is ``items`` or an enum value is invalid.
    """
    if field_name == "items":
        raise ValueError("Use the item patch functions to edit items")
    if field_name not in CanonicalDocument.__dataclass_fields__:
        raise KeyError(f"Unknown document field: {field_name}")

    coerce = _COERCIONS.get(field_name)
    if coerce is not None:
        value = coerce(value)
    return dataclasses.replace(document, **{field_name: value})


def replace_item(
    document: CanonicalDocument, index: int, item: LineItem
) -> CanonicalDocument:
    """Return a copy of ``document`` with the item at ``index`` replaced."""
    _check_index(document, index)
    items = list(document.items)
    items[index] = item
    return dataclasses.replace(document, items=tuple(items))


def replace_item_field(
    document: CanonicalDocument, index: int, field_name: str, value: str
) -> CanonicalDocument:
    """Return a copy of ``document`` with one field of one item replaced.

    Derived fields are not recomputed: editing ``total_price`` leaves
    ``tax_amount`` untouched.
    """
    _check_index(document, index)
    if field_name not in LineItem.__dataclass_fields__:
        raise KeyError(f"Unknown item field: {field_name}")
    item = dataclasses.replace(document.items[index], **{field_name: value})
    return replace_item(document, index, item)


def add_item(
    document: CanonicalDocument, item: LineItem | None = None
) -> CanonicalDocument:
    """Return a copy of ``document`` with ``item`` (or a blank row) appended."""
    return dataclasses.replace(document, items=(*document.items, item or LineItem()))


def remove_item(document: CanonicalDocument, index: int) -> CanonicalDocument:
    """Return a copy of ``document`` without the item at ``index``."""
    _check_index(document, index)
    items = document.items[:index] + document.items[index + 1 :]
    return dataclasses.replace(document, items=items)


def _check_index(document: CanonicalDocument, index: int) -> None:
    if not 0 <= index < len(document.items):
        raise IndexError(
            f"Item index {index} out of range for {len(document.items)} items"
        )
