"""Projection of canonical records into destination record shapes.

Projection is a pure reshape: fields are copied or renamed, fields the
destination does not know are dropped, and no monetary value is
recomputed. Destination items are built from ``document.items`` by
position, so rows sharing a product name keep their own values.
"""

import dataclasses
from collections.abc import Callable

from chohyo.extraction.document import CanonicalDocument, DocumentType, LineItem
from chohyo.utils.logger import get_logger

from .schemas import (
    DeliveryItem,
    DeliveryRecord,
    DestinationDetails,
    DestinationRecord,
    InvoiceItem,
    InvoiceRecord,
    OrderItem,
    OrderRecord,
    QuotationItem,
    QuotationRecord,
)

logger = get_logger(__name__)


def _base_item(item: LineItem) -> dict[str, str | None]:
    return {
        "product_name": item.product_name,
        "unit": item.unit,
        "quantity": item.quantity,
        "unit_price": item.unit_price,
        "tax_rate": item.tax_rate,
        "tax_amount": item.tax_amount,
        "remarks": item.remarks or None,
    }


def _details(document: CanonicalDocument) -> DestinationDetails | None:
    if document.details is None:
        return None
    return DestinationDetails(**dataclasses.asdict(document.details))


def _to_delivery(document: CanonicalDocument) -> DeliveryRecord:
    return DeliveryRecord(
        company_id=document.company_id,
        client_id=document.client_id,
        total_amount=document.total_amount,
        total_tax=document.total_tax,
        consumption_tax_display=int(document.consumption_tax_display),
        fraction_calculation=int(document.fraction_calculation),
        delivery_date=document.issue_date,
        remarks=document.remarks,
        items=[
            DeliveryItem(**_base_item(item), total_price=item.total_price or "")
            for item in document.items
        ],
    )


def _to_invoice(document: CanonicalDocument) -> InvoiceRecord:
    return InvoiceRecord(
        company_id=document.company_id,
        client_id=document.client_id,
        client_name=document.client_name,
        issue_date=document.issue_date,
        closing_date=document.closing_date,
        collection_date=document.collection_date,
        consumption_tax_display=int(document.consumption_tax_display),
        fraction_calculation=int(document.fraction_calculation),
        purchase_amount=document.total_amount,
        consumption_tax_amount=document.total_tax,
        total_purchase=document.grand_total,
        amount_billed=document.grand_total,
        bank_name=document.bank_name,
        bank_account_name=document.bank_account_name,
        bank_branch_name=document.bank_branch_name,
        bank_account_type=(
            None
            if document.bank_account_type is None
            else int(document.bank_account_type)
        ),
        bank_account_number=document.bank_account_number,
        items=[
            InvoiceItem(
                **_base_item(item),
                sales_amount=item.sales_amount or "",
                sales_date=item.sales_date,
            )
            for item in document.items
        ],
    )


def _to_order(document: CanonicalDocument) -> OrderRecord:
    return OrderRecord(
        company_id=document.company_id,
        client_id=document.client_id,
        special_notes=document.special_notes,
        total_amount=document.total_amount,
        total_tax=document.total_tax,
        grand_total=document.grand_total,
        consumption_tax_display=int(document.consumption_tax_display),
        fraction_calculation=int(document.fraction_calculation),
        order_date=document.issue_date,
        items=[
            OrderItem(
                **_base_item(item),
                product_code=item.product_code,
                total_price=item.total_price or "",
            )
            for item in document.items
        ],
        details=_details(document),
    )


def _to_quotation(document: CanonicalDocument) -> QuotationRecord:
    return QuotationRecord(
        company_id=document.company_id,
        client_id=document.client_id,
        quotation_number=document.document_number,
        version=document.version,
        total_amount=document.total_amount,
        total_tax=document.total_tax,
        consumption_tax_display=int(document.consumption_tax_display),
        fraction_calculation=int(document.fraction_calculation),
        quotation_date=document.issue_date,
        expiry_date=document.expiry_date,
        subject=document.subject,
        remarks=document.remarks,
        special_notes=document.special_notes,
        items=[
            QuotationItem(**_base_item(item), sales_amount=item.sales_amount or "")
            for item in document.items
        ],
        details=_details(document),
    )


_PROJECTIONS: dict[DocumentType, Callable[[CanonicalDocument], DestinationRecord]] = {
    DocumentType.DELIVERY: _to_delivery,
    DocumentType.INVOICE: _to_invoice,
    DocumentType.ORDER: _to_order,
    DocumentType.QUOTATION: _to_quotation,
}


def project(document: CanonicalDocument) -> DestinationRecord:
    """Map ``document`` into the record shape of its document type.

    Args:
        document: Canonical record to reshape.

    Returns:
        One of the four destination records, chosen by
        ``document.document_type``.
    """
    record = _PROJECTIONS[document.document_type](document)
    logger.debug(
        "Projected %s document into %s",
        document.document_type.value,
        type(record).__name__,
    )
    return record
