"""Line-item table parsing.

The item table is located by its header keyword and ends at the first
totals or page-break marker. Each row is matched against a ranked list of
row grammars; the first grammar that matches decides the field
assignment, and rows matching none of them are dropped as OCR noise.
"""

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from chohyo.utils.logger import get_logger

from .document import DEFAULT_TAX_RATE, LineItem

logger = get_logger(__name__)


_SECTION_PATTERN = re.compile(
    r"(?:品名|商品名|Product|Item|Description)[^\n]*\n"
    r"([\s\S]*?)"
    r"(?=金額|小計|合計|Page|備考欄|\n\n|\Z)",
    re.IGNORECASE,
)

_HEADER_PATTERN = re.compile(
    r"品名|商品名|Product|Description|数量|Quantity|単価|Price|金額|Amount",
    re.IGNORECASE,
)

_MONEY = r"[¥￥]?([\d,]+(?:\.\d+)?)"
_QTY = r"(\d+(?:\.\d+)?)"
_WORDS = r"([^\d¥￥]+?)"
_TAIL = rf"\s+{_MONEY}\s+{_MONEY}\s*(.*)$"


@dataclass(frozen=True)
class RowGrammar:
    """A candidate column ordering for one item row."""

    name: str
    pattern: re.Pattern[str]
    fields: tuple[str, ...]


ROW_GRAMMARS: tuple[RowGrammar, ...] = (
    RowGrammar(
        "name_qty_unit",
        re.compile(rf"^{_WORDS}\s+{_QTY}\s+{_WORDS}{_TAIL}"),
        ("product_name", "quantity", "unit", "unit_price", "total_price", "remarks"),
    ),
    RowGrammar(
        "name_unit_qty",
        re.compile(rf"^{_WORDS}\s+{_WORDS}\s+{_QTY}{_TAIL}"),
        ("product_name", "unit", "quantity", "unit_price", "total_price", "remarks"),
    ),
    RowGrammar(
        "permissive",
        re.compile(rf"^(.+?)\s+{_QTY}\s+(\S+){_TAIL}"),
        ("product_name", "quantity", "unit", "unit_price", "total_price", "remarks"),
    ),
)


def parse_amount(value: str) -> Decimal | None:
    """Parse a captured amount, ignoring thousands separators.

    Returns:
        The numeric value, or ``None`` if ``value`` is not a finite number.
    """
    try:
        amount = Decimal(value.replace(",", "").strip())
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


def derive_tax_amount(total_price: str, tax_rate: str = DEFAULT_TAX_RATE) -> str:
    """Compute the line tax as ``total_price * rate%`` rounded half up.

    Returns ``""`` when either operand is not numeric, or when the result
    has more digits than the decimal context can round to a whole number.
    """
    amount = parse_amount(total_price)
    rate = parse_amount(tax_rate)
    if amount is None or rate is None:
        return ""
    try:
        tax = (amount * rate / 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        logger.debug("Line tax not representable for total %r", total_price)
        return ""
    return str(tax)


class LineItemParser:
    """Extracts :class:`LineItem` rows from document text.

    Args:
        grammars: Ranked row grammars, tried in order for every line.
        tax_rate: Flat tax rate (percent) applied to every parsed row.
    """

    def __init__(
        self,
        grammars: tuple[RowGrammar, ...] = ROW_GRAMMARS,
        tax_rate: str = DEFAULT_TAX_RATE,
    ) -> None:
        self.grammars = grammars
        self.tax_rate = tax_rate

    def parse(self, text: str) -> tuple[LineItem, ...]:
        """Parse all item rows found in ``text``.

        Args:
            text: Raw document text.

        Returns:
            Items in order of appearance; empty when no item table exists.
        """
        normalized = text.replace("\r\n", "\n")
        section = _SECTION_PATTERN.search(normalized)
        if section is None:
            logger.debug("No item table header found")
            return ()

        first_line = normalized.count("\n", 0, section.start(1))
        items: list[LineItem] = []
        dropped = 0

        for offset, raw_line in enumerate(section.group(1).split("\n")):
            line = raw_line.strip()
            if not line or _HEADER_PATTERN.search(line):
                continue
            item = self.parse_line(line, source_line=first_line + offset)
            if item is None:
                dropped += 1
                continue
            items.append(item)

        logger.info("Parsed %d line items (%d lines dropped)", len(items), dropped)
        return tuple(items)

    def parse_line(self, line: str, source_line: int | None = None) -> LineItem | None:
        """Parse one row with the first grammar that matches it."""
        for grammar in self.grammars:
            match = grammar.pattern.match(line)
            if match is None:
                continue
            values = {
                name: (group or "").strip()
                for name, group in zip(grammar.fields, match.groups())
            }
            logger.debug("Row %r matched grammar %s", line, grammar.name)
            return LineItem(
                **values,
                tax_rate=self.tax_rate,
                tax_amount=derive_tax_amount(values["total_price"], self.tax_rate),
                sales_amount=values["total_price"],
                source_line=source_line,
            )
        return None


def parse_items(text: str) -> tuple[LineItem, ...]:
    """Parse item rows using the default grammars and tax rate."""
    return LineItemParser().parse(text)
