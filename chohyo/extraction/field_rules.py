"""Rule-based field extraction for bilingual business documents.

Every field is described by a :class:`FieldRule`: a case-insensitive
pattern combining Japanese and English vocabulary, a selection strategy,
and an optional transform applied to the captured text.

Rules are evaluated in the order of :data:`FIELD_RULES`. A rule that
matches writes its field(s); a rule that does not match writes nothing.
Consequently, when two rules target the same field the later one wins,
which gives:

* ``first`` rules: the first occurrence in the text is captured.
* ``ordinal`` rules: all occurrences are collected in order of appearance
  and assigned to the rule's slots (company first, client second).
* ``flag`` rules: keyword presence sets a fixed value; later rules in the
  table overwrite earlier ones (last-write-wins).
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from chohyo.utils.logger import get_logger

from .document import (
    BankAccountType,
    DocumentType,
    FractionCalculation,
    TaxDisplay,
)

logger = get_logger(__name__)


class Strategy(StrEnum):
    """How a rule selects among the matches of its pattern."""

    FIRST = "first"
    ORDINAL = "ordinal"
    FLAG = "flag"


@dataclass(frozen=True)
class FieldRule:
    """A single extraction rule.

    ``slots`` names the target fields of an ``ordinal`` rule in assignment
    order. ``document_types`` restricts the rule to some document kinds;
    ``None`` means the rule applies to every kind.
    """

    field_name: str
    pattern: re.Pattern[str]
    strategy: Strategy = Strategy.FIRST
    transform: Callable[[str], str] | None = None
    slots: tuple[str, ...] = ()
    flag_value: Any = None
    document_types: frozenset[DocumentType] | None = None

    @property
    def targets(self) -> tuple[str, ...]:
        return self.slots or (self.field_name,)

    def applies_to(self, document_type: DocumentType | None) -> bool:
        if document_type is None or self.document_types is None:
            return True
        return document_type in self.document_types


@dataclass
class ExtractedField:
    """A field value located by a rule."""

    field_name: str
    value: Any
    start_pos: int
    end_pos: int
    rule_name: str


def _rule(
    field_name: str,
    pattern: str,
    strategy: Strategy = Strategy.FIRST,
    **kwargs: Any,
) -> FieldRule:
    return FieldRule(
        field_name=field_name,
        pattern=re.compile(pattern, re.IGNORECASE),
        strategy=strategy,
        **kwargs,
    )


def _strip_honorific(value: str) -> str:
    return value.replace("御中", "").strip()


_DATE = (
    r"\d{4}年\d{1,2}月\d{1,2}日"
    r"|\d{4}[-/]\d{1,2}[-/]\d{1,2}"
    r"|\d{1,2}[-/]\d{1,2}[-/]\d{4}"
)
_AMOUNT = r"[¥￥$]?\s*(\d[\d,]*(?:\.\d+)?)"
_POSTAL = r"〒\s*(\d{3}-?\d{4})"

_INVOICE_ONLY = frozenset({DocumentType.INVOICE})
_ORDER_QUOTATION = frozenset({DocumentType.ORDER, DocumentType.QUOTATION})
_QUOTATION_ONLY = frozenset({DocumentType.QUOTATION})

FIELD_RULES: tuple[FieldRule, ...] = (
    # Identification
    _rule(
        "document_number",
        r"(?:No\.|番号|#|注文番号|見積番号|請求書番号)[\s:]*([A-Z0-9-]+)",
    ),
    _rule("version", r"(?:version|ver\.?|版)[\s:]*(\d+(?:\.\d+)*)"),
    # Dates
    _rule("issue_date", rf"({_DATE})"),
    _rule(
        "expiry_date",
        rf"(?:有効期限|expiry(?:\s*date)?|valid\s*until)[\s:]*({_DATE})",
    ),
    _rule(
        "closing_date",
        rf"(?:締め?日|締切日|closing\s*date)[\s:]*({_DATE})",
        document_types=_INVOICE_ONLY,
    ),
    _rule(
        "collection_date",
        rf"(?:回収予定日|入金予定日|お?支払期限|(?:payment\s*)?due\s*date)[\s:]*({_DATE})",
        document_types=_INVOICE_ONLY,
    ),
    # Parties
    _rule(
        "postal_code",
        _POSTAL,
        Strategy.ORDINAL,
        slots=("company_postal_code", "client_postal_code"),
    ),
    _rule("company_phone", r"(?:電話(?:番号)?|TEL|Phone)[\s:.]*(\+?\d[\d-]*)"),
    _rule(
        "company_registration_number",
        r"(?:登録番号|Registration\s*(?:Number|No\.?))[\s:]*(T?\d+)",
    ),
    _rule("company_contact", r"(?:担当者?|Contact)[\s:]*([^\n]+)"),
    _rule(
        "company_name",
        r"([^\n]*(?:株式会社|有限会社|合同会社|Co\.|Ltd\.|Inc\.|Corp\.|LLC)[^\n]*)",
        Strategy.ORDINAL,
        slots=("company_name", "client_name"),
    ),
    # The salutation marker outranks the ordinal client name above.
    _rule("client_name", r"([^\n]+御中)", transform=_strip_honorific),
    _rule(
        "address",
        r"〒\s*\d{3}-?\d{4}\s*([^\n]+(?:都|道|府|県)[^\n]+)",
        Strategy.ORDINAL,
        slots=("company_address", "client_address"),
    ),
    # Bank transfer details
    _rule(
        "bank_name",
        r"(?:銀行名?|Bank(?:\s*Name)?)[\s:]*([^\n]+)",
        document_types=_INVOICE_ONLY,
    ),
    _rule(
        "bank_branch_name",
        r"(?:支店名?|Branch(?:\s*Name)?)[\s:]*([^\n]+)",
        document_types=_INVOICE_ONLY,
    ),
    _rule(
        "bank_account_name",
        r"(?:口座名義|Account\s*Name)[\s:]*([^\n]+)",
        document_types=_INVOICE_ONLY,
    ),
    _rule(
        "bank_account_number",
        r"(?:口座番号|Account\s*(?:Number|No\.?))[\s:]*(\d+)",
        document_types=_INVOICE_ONLY,
    ),
    _rule(
        "bank_account_type",
        r"普通|ordinary|savings",
        Strategy.FLAG,
        flag_value=BankAccountType.ORDINARY,
        document_types=_INVOICE_ONLY,
    ),
    _rule(
        "bank_account_type",
        r"当座|checking|current\s*account",
        Strategy.FLAG,
        flag_value=BankAccountType.CURRENT,
        document_types=_INVOICE_ONLY,
    ),
    # Terms
    _rule(
        "subject",
        r"(?:件名|subject)[\s:]*([^\n]+)",
        document_types=_QUOTATION_ONLY,
    ),
    _rule(
        "payment_terms",
        r"(?:支払条件|payment\s*terms)[\s:]*([^\n]+)",
        document_types=_ORDER_QUOTATION,
    ),
    _rule(
        "delivery_date",
        r"(?:納期|delivery\s*date)[\s:]*([^\n]+)",
        document_types=_ORDER_QUOTATION,
    ),
    _rule(
        "delivery_place",
        r"(?:納入場所|delivery\s*place)[\s:]*([^\n]+)",
        document_types=_ORDER_QUOTATION,
    ),
    # Totals
    _rule("total_amount", rf"(?:(?<!合計)金額|小計|Subtotal)[\s:]*{_AMOUNT}"),
    _rule(
        "total_tax",
        rf"(?:消費税|税|Tax|VAT)(?:\s*[(（][^)）\n]*[)）])?[\s:]*{_AMOUNT}",
    ),
    _rule(
        "grand_total",
        rf"(?:合計金額|合計|総額|(?<![a-z])Total(?:\s*Amount)?)"
        rf"(?:\s*[(（]税込[)）])?[\s:]*{_AMOUNT}",
    ),
    # Tax handling flags
    _rule(
        "consumption_tax_display",
        r"外税|税抜|tax\s*excluded",
        Strategy.FLAG,
        flag_value=TaxDisplay.EXCLUSIVE,
    ),
    _rule(
        "consumption_tax_display",
        r"内税|税込|tax\s*included",
        Strategy.FLAG,
        flag_value=TaxDisplay.INCLUSIVE,
    ),
    _rule(
        "fraction_calculation",
        r"切り?捨て|round\s*down",
        Strategy.FLAG,
        flag_value=FractionCalculation.FLOOR,
    ),
    _rule(
        "fraction_calculation",
        r"切り?上げ|round\s*up",
        Strategy.FLAG,
        flag_value=FractionCalculation.CEIL,
    ),
    _rule(
        "fraction_calculation",
        r"四捨五入|round\s*off",
        Strategy.FLAG,
        flag_value=FractionCalculation.ROUND,
    ),
    # Free text
    _rule("remarks", r"(?:備考|remarks|(?<!special\s)notes)[\s:]*([^\n]+)"),
    _rule("special_notes", r"(?:特記事項|special\s*notes)[\s:]*([^\n]+)"),
)


class FieldExtractor:
    """Applies the field rule table to document text.

    Args:
        rules: Ordered rule table. Defaults to :data:`FIELD_RULES`.
    """

    def __init__(self, rules: tuple[FieldRule, ...] = FIELD_RULES) -> None:
        self.rules = rules

    @property
    def field_names(self) -> list[str]:
        """All field names any rule can produce, in table order."""
        names: list[str] = []
        for rule in self.rules:
            for name in rule.targets:
                if name not in names:
                    names.append(name)
        return names

    def find(
        self,
        text: str,
        document_type: DocumentType | None = None,
    ) -> list[ExtractedField]:
        """Locate every rule's match in ``text``.

        Args:
            text: Raw document text.
            document_type: Restricts evaluation to rules applicable to this
                type. ``None`` evaluates every rule.

        Returns:
            Extracted fields in rule-table order.
        """
        results: list[ExtractedField] = []
        for rule in self.rules:
            if not rule.applies_to(document_type):
                continue
            results.extend(self._apply(rule, text))
        logger.debug("Field rules located %d values", len(results))
        return results

    def extract(
        self,
        text: str,
        document_type: DocumentType | None = None,
    ) -> dict[str, Any]:
        """Resolve field values from ``text``.

        Later rules overwrite earlier ones for the same field; fields with
        no matching rule are absent from the result.
        """
        values: dict[str, Any] = {}
        for found in self.find(text, document_type):
            values[found.field_name] = found.value
        return values

    def extract_field(self, text: str, field_name: str) -> str:
        """Return the value of one field, or ``""`` when nothing matched.

        Raises:
            KeyError: If no rule produces ``field_name``.
        """
        if field_name not in self.field_names:
            raise KeyError(f"Unknown field: {field_name}")
        value = self.extract(text).get(field_name)
        if value is None:
            return ""
        return str(int(value)) if isinstance(value, int) else value

    def _apply(self, rule: FieldRule, text: str) -> list[ExtractedField]:
        if rule.strategy is Strategy.ORDINAL:
            return [
                self._to_field(slot, rule, match)
                for slot, match in zip(rule.slots, rule.pattern.finditer(text))
            ]

        match = rule.pattern.search(text)
        if match is None:
            return []
        return [self._to_field(rule.field_name, rule, match)]

    def _to_field(
        self, field_name: str, rule: FieldRule, match: re.Match[str]
    ) -> ExtractedField:
        if rule.strategy is Strategy.FLAG:
            value: Any = rule.flag_value
        else:
            raw = match.group(1) if match.groups() else match.group(0)
            value = rule.transform(raw) if rule.transform else raw.strip()
        return ExtractedField(
            field_name=field_name,
            value=value,
            start_pos=match.start(),
            end_pos=match.end(),
            rule_name=rule.field_name,
        )
