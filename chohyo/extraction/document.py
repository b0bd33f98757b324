"""Canonical document record and its line items.

The canonical record is the destination-independent representation of one
scanned business document. Records are immutable values; corrections are
applied by building a new record (see ``chohyo.extraction.builder``).
"""

from dataclasses import asdict, dataclass, field
from enum import IntEnum, StrEnum
from typing import Any


class DocumentType(StrEnum):
    """Kinds of business documents the engine recognizes."""

    DELIVERY = "delivery"
    INVOICE = "invoice"
    ORDER = "order"
    QUOTATION = "quotation"


class TaxDisplay(IntEnum):
    """Whether quoted totals include consumption tax."""

    EXCLUSIVE = 0
    INCLUSIVE = 1


class FractionCalculation(IntEnum):
    """Rounding policy for fractional currency amounts."""

    FLOOR = 0
    CEIL = 1
    ROUND = 2


class BankAccountType(IntEnum):
    """Japanese bank account kinds (普通 / 当座)."""

    ORDINARY = 1
    CURRENT = 2


DEFAULT_TAX_RATE = "10"


@dataclass(frozen=True)
class LineItem:
    """One row of the goods/services table.

    ``source_line`` is the 0-based line offset of the row in the raw text.
    It is audit metadata only; projection matches items by their position
    in ``items``. Manually added items carry ``None``.
    """

    product_name: str = ""
    unit: str = ""
    quantity: str = ""
    unit_price: str = ""
    total_price: str = ""
    tax_rate: str = DEFAULT_TAX_RATE
    tax_amount: str = ""
    remarks: str = ""
    sales_amount: str | None = None
    sales_date: str | None = None
    product_code: str | None = None
    source_line: int | None = None


@dataclass(frozen=True)
class DocumentDetails:
    """Delivery and payment terms printed on orders and quotations."""

    delivery_date: str | None = None
    delivery_place: str | None = None
    payment_terms: str | None = None
    notes: str | None = None

    def is_empty(self) -> bool:
        return not any(
            (self.delivery_date, self.delivery_place, self.payment_terms, self.notes)
        )


@dataclass(frozen=True)
class CanonicalDocument:
    """Normalized record of a single document."""

    document_type: DocumentType = DocumentType.DELIVERY
    document_number: str = ""
    version: str | None = None

    company_id: str | None = None
    company_name: str = ""
    company_address: str = ""
    company_postal_code: str = ""
    company_phone: str = ""
    company_registration_number: str = ""
    company_contact: str | None = None

    client_id: str | None = None
    client_name: str = ""
    client_address: str = ""
    client_postal_code: str = ""

    issue_date: str = ""
    expiry_date: str | None = None
    closing_date: str | None = None
    collection_date: str | None = None

    items: tuple[LineItem, ...] = ()

    total_amount: str = ""
    total_tax: str = ""
    grand_total: str = ""

    consumption_tax_display: TaxDisplay = TaxDisplay.EXCLUSIVE
    fraction_calculation: FractionCalculation = FractionCalculation.ROUND

    details: DocumentDetails | None = None
    subject: str | None = None
    remarks: str | None = None
    special_notes: str | None = None

    bank_name: str | None = None
    bank_branch_name: str | None = None
    bank_account_name: str | None = None
    bank_account_type: BankAccountType | None = None
    bank_account_number: str | None = None

    raw_text: str | None = field(default=None, repr=False)

    def to_dict(self) -> dict[str, Any]:
        """Return the record as plain nested data suitable for JSON."""
        data = asdict(self)
        data["document_type"] = self.document_type.value
        data["consumption_tax_display"] = int(self.consumption_tax_display)
        data["fraction_calculation"] = int(self.fraction_calculation)
        if self.bank_account_type is not None:
            data["bank_account_type"] = int(self.bank_account_type)
        data["items"] = list(data["items"])
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CanonicalDocument":
        """Rebuild a record from the output of :meth:`to_dict`.

        Raises:
            KeyError: If ``data`` contains a key that is not a record field.
            ValueError: If an enum-valued field holds an unknown value.
        """
        values = dict(data)
        unknown = set(values) - set(cls.__dataclass_fields__)
        if unknown:
            raise KeyError(f"Unknown document fields: {sorted(unknown)}")

        if "document_type" in values:
            values["document_type"] = DocumentType(values["document_type"])
        if "consumption_tax_display" in values:
            values["consumption_tax_display"] = TaxDisplay(
                values["consumption_tax_display"]
            )
        if "fraction_calculation" in values:
            values["fraction_calculation"] = FractionCalculation(
                values["fraction_calculation"]
            )
        if values.get("bank_account_type") is not None:
            values["bank_account_type"] = BankAccountType(values["bank_account_type"])
        if values.get("details") is not None:
            values["details"] = DocumentDetails(**values["details"])
        values["items"] = tuple(LineItem(**item) for item in values.get("items", ()))
        return cls(**values)
