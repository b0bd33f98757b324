"""Document type detection from raw OCR text.

Keyword rules are evaluated in a fixed priority order and the first rule
that matches decides the type. A document mentioning both invoice and
quotation vocabulary is therefore classified by rule priority, never by
keyword position or frequency.
"""

import re
from dataclasses import dataclass

from chohyo.utils.logger import get_logger

from .document import DocumentType

logger = get_logger(__name__)


@dataclass(frozen=True)
class TypeRule:
    """A keyword pattern that identifies one document type."""

    document_type: DocumentType
    pattern: re.Pattern[str]


# Priority order matters: delivery, invoice, order, quotation.
TYPE_RULES: tuple[TypeRule, ...] = (
    TypeRule(
        DocumentType.DELIVERY,
        re.compile(r"納品書|delivery\s*slip", re.IGNORECASE),
    ),
    TypeRule(
        DocumentType.INVOICE,
        re.compile(r"請求書|invoice", re.IGNORECASE),
    ),
    TypeRule(
        DocumentType.ORDER,
        re.compile(r"注文書|purchase\s*order|order", re.IGNORECASE),
    ),
    TypeRule(
        DocumentType.QUOTATION,
        re.compile(r"見積書|quotation|quote|estimate", re.IGNORECASE),
    ),
)

DEFAULT_DOCUMENT_TYPE = DocumentType.DELIVERY


def classify(text: str) -> DocumentType:
    """Return the document type for ``text``.

    Args:
        text: Raw document text.

    Returns:
        The type of the first matching rule, or ``delivery`` when no
        keyword is present.
    """
    for rule in TYPE_RULES:
        if rule.pattern.search(text):
            logger.debug("Classified document as %s", rule.document_type.value)
            return rule.document_type
    return DEFAULT_DOCUMENT_TYPE
