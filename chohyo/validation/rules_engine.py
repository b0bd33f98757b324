"""Reconciliation and validation checks for canonical records.

Field-level rules (required fields, date and amount formats, patterns) are
configured per document type in YAML. Cross-field checks reconcile line
items against the subtotal, subtotal plus tax against the grand total, and
quantity times unit price against each row total.

Checks only report; they never modify the record.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from chohyo.extraction.document import CanonicalDocument
from chohyo.extraction.line_items import parse_amount
from chohyo.utils.logger import get_logger

logger = get_logger(__name__)


DATE_FORMATS: list[str] = [
    "%Y年%m月%d日",
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%d/%m/%Y",
    "%m-%d-%Y",
    "%d-%m-%Y",
]

_POSTAL_CODE = re.compile(r"\d{3}-?\d{4}")
_PHONE_NOISE = re.compile(r"[\s\-()+]")
_PHONE_DIGITS = re.compile(r"\d{10,12}")

# Every check receives a non-empty string and returns an error message, or
# None when the value passes.
Check = Callable[[str, dict[str, Any]], str | None]


def _check_date(value: str, rule: dict[str, Any]) -> str | None:
    for fmt in DATE_FORMATS:
        try:
            datetime.strptime(value, fmt)
        except ValueError:
            continue
        return None
    return f"Invalid date format: {value}"


def _check_amount(value: str, rule: dict[str, Any]) -> str | None:
    amount = parse_amount(value)
    if amount is None:
        return f"Invalid amount format: {value}"
    if amount < 0:
        return f"Amount must not be negative: {amount}"
    return None


def _check_regex(value: str, rule: dict[str, Any]) -> str | None:
    pattern = rule.get("pattern", "")
    return None if re.match(pattern, value) else f"Does not match pattern: {pattern}"


def _check_postal_code(value: str, rule: dict[str, Any]) -> str | None:
    return None if _POSTAL_CODE.fullmatch(value) else f"Invalid postal code: {value}"


def _check_phone(value: str, rule: dict[str, Any]) -> str | None:
    digits = _PHONE_NOISE.sub("", value)
    return None if _PHONE_DIGITS.fullmatch(digits) else f"Invalid phone: {value}"


CHECKS: dict[str, Check] = {
    "date_format": _check_date,
    "amount": _check_amount,
    "regex": _check_regex,
    "postal_code": _check_postal_code,
    "phone": _check_phone,
}

_COMMON_RULES: dict[str, list[dict[str, Any]]] = {
    "issue_date": [{"type": "required"}, {"type": "date_format"}],
    "company_name": [{"type": "required"}],
    "company_postal_code": [{"type": "postal_code"}],
    "company_phone": [{"type": "phone"}],
    "total_amount": [{"type": "amount"}],
    "total_tax": [{"type": "amount"}],
    "grand_total": [{"type": "amount"}],
}
_NUMBERED = {"document_number": [{"type": "required"}]}

DEFAULT_RULES: dict[str, dict[str, list[dict[str, Any]]]] = {
    "delivery": _COMMON_RULES,
    "invoice": {
        **_COMMON_RULES,
        **_NUMBERED,
        "client_name": [{"type": "required"}],
        "closing_date": [{"type": "date_format"}],
        "collection_date": [{"type": "date_format"}],
        "company_registration_number": [{"type": "regex", "pattern": r"^T?\d{13}$"}],
    },
    "order": {**_COMMON_RULES, **_NUMBERED},
    "quotation": {
        **_COMMON_RULES,
        **_NUMBERED,
        "expiry_date": [{"type": "date_format"}],
    },
}


@dataclass
class ValidationResult:
    """Result of a single check."""

    field_name: str
    is_valid: bool
    message: str
    rule_name: str


@dataclass
class ValidationReport:
    all_valid: bool
    results: list[ValidationResult]
    warnings: list[str] = field(default_factory=list)

    @property
    def failures(self) -> list[ValidationResult]:
        return [r for r in self.results if not r.is_valid]


class RulesEngine:
    """Applies per-type field rules, then reconciles the totals.

    Rules come from ``rules_path`` when it exists and is non-empty,
    otherwise from :data:`DEFAULT_RULES`.

    Args:
        rules_path: Validation rules YAML file.
        amount_tolerance: Absolute difference tolerated when reconciling
            monetary totals.
    """

    def __init__(
        self,
        rules_path: Path = Path("configs/validation_rules.yaml"),
        amount_tolerance: float = 1.0,
    ) -> None:
        self.rules = self._load_rules(rules_path)
        self.tolerance = Decimal(str(amount_tolerance))

    @staticmethod
    def _load_rules(path: Path) -> dict:
        data = None
        if path.exists():
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        if not data:
            logger.debug("Using default validation rules")
            return DEFAULT_RULES
        logger.info("Loaded validation rules from %s", path)
        return data

    def check(self, field_name: str, value: Any, rule: dict[str, Any]) -> ValidationResult:
        """Apply one rule to one value.

        Empty values only fail the ``required`` rule.

        Raises:
            KeyError: If ``rule["type"]`` names no known check.
        """
        rule_type = rule["type"]
        text = "" if value is None else str(value).strip()

        if rule_type == "required":
            error = None if text else f"Required field missing: {field_name}"
        elif rule_type not in CHECKS:
            raise KeyError(rule_type)
        else:
            error = CHECKS[rule_type](text, rule) if text else None

        message = error or ("OK" if text else "No value to validate")
        return ValidationResult(field_name, error is None, message, rule_type)

    def validate(self, document: CanonicalDocument) -> ValidationReport:
        """Run the field rules for the document's type and the cross checks."""
        doc_type = document.document_type.value
        results: list[ValidationResult] = []
        warnings: list[str] = []

        for field_name, rules in self.rules.get(doc_type, {}).items():
            value = getattr(document, field_name, None)
            for rule in rules:
                try:
                    results.append(self.check(field_name, value, rule))
                except KeyError:
                    warnings.append(f"Unknown rule type: {rule.get('type')}")

        results.extend(self._reconcile(document))

        report = ValidationReport(
            all_valid=all(r.is_valid for r in results),
            results=results,
            warnings=warnings,
        )
        logger.info(
            "Validated %s: %d checks, %d failed",
            doc_type,
            len(results),
            len(report.failures),
        )
        return report

    def _reconcile(self, document: CanonicalDocument) -> list[ValidationResult]:
        """Cross-check line items, subtotal, tax and grand total.

        A check is skipped when any amount it needs is missing or not
        numeric.
        """
        results = []

        row_totals = []
        for index, item in enumerate(document.items):
            quantity, unit_price, total_price = (
                parse_amount(item.quantity),
                parse_amount(item.unit_price),
                parse_amount(item.total_price),
            )
            row_totals.append(total_price)
            if quantity is not None and unit_price is not None and total_price is not None:
                results.append(
                    self._agree(
                        f"items[{index}].total_price",
                        "Quantity x unit price",
                        quantity * unit_price,
                        total_price,
                    )
                )

        subtotal = parse_amount(document.total_amount)
        if subtotal is not None and row_totals and None not in row_totals:
            results.append(
                self._agree("total_amount", "Line items sum", sum(row_totals), subtotal)
            )

        tax = parse_amount(document.total_tax)
        grand_total = parse_amount(document.grand_total)
        if subtotal is not None and tax is not None and grand_total is not None:
            results.append(
                self._agree("grand_total", "Subtotal plus tax", subtotal + tax, grand_total)
            )

        return results

    def _agree(
        self, field_name: str, label: str, expected: Decimal, actual: Decimal
    ) -> ValidationResult:
        ok = abs(expected - actual) <= self.tolerance
        message = (
            f"{label} matches ({actual})"
            if ok
            else f"{label} ({expected}) doesn't match {actual}"
        )
        return ValidationResult(field_name, ok, message, "reconciliation")
