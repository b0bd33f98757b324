"""Destination record shapes for the four back-office document tables."""

from pydantic import BaseModel


class DestinationDetails(BaseModel):
    """Delivery and payment terms block for orders and quotations."""

    delivery_date: str | None = None
    delivery_place: str | None = None
    payment_terms: str | None = None
    notes: str | None = None


class DeliveryItem(BaseModel):
    product_name: str
    unit_price: str
    unit: str
    quantity: str
    total_price: str
    tax_rate: str
    tax_amount: str
    remarks: str | None = None


class InvoiceItem(BaseModel):
    product_name: str
    unit: str
    quantity: str
    unit_price: str
    sales_amount: str
    tax_rate: str
    tax_amount: str
    remarks: str | None = None
    sales_date: str | None = None


class OrderItem(BaseModel):
    product_name: str
    product_code: str | None = None
    unit: str
    quantity: str
    unit_price: str
    total_price: str
    tax_rate: str
    tax_amount: str
    remarks: str | None = None


class QuotationItem(BaseModel):
    product_name: str
    unit: str
    quantity: str
    unit_price: str
    sales_amount: str
    tax_rate: str
    tax_amount: str
    remarks: str | None = None


class DeliveryRecord(BaseModel):
    """Delivery slip (納品書) record."""

    company_id: str | None = None
    client_id: str | None = None
    total_amount: str
    total_tax: str
    consumption_tax_display: int
    fraction_calculation: int
    delivery_date: str
    remarks: str | None = None
    items: list[DeliveryItem]


class InvoiceRecord(BaseModel):
    """Invoice (請求書) record."""

    company_id: str | None = None
    client_id: str | None = None
    client_name: str
    issue_date: str
    closing_date: str | None = None
    collection_date: str | None = None
    consumption_tax_display: int
    fraction_calculation: int
    purchase_amount: str
    consumption_tax_amount: str
    total_purchase: str
    amount_billed: str
    bank_name: str | None = None
    bank_account_name: str | None = None
    bank_branch_name: str | None = None
    bank_account_type: int | None = None
    bank_account_number: str | None = None
    items: list[InvoiceItem]


class OrderRecord(BaseModel):
    """Purchase order (注文書) record."""

    company_id: str | None = None
    client_id: str | None = None
    special_notes: str | None = None
    total_amount: str
    total_tax: str
    grand_total: str
    consumption_tax_display: int
    fraction_calculation: int
    order_date: str
    items: list[OrderItem]
    details: DestinationDetails | None = None


class QuotationRecord(BaseModel):
    """Quotation (見積書) record."""

    company_id: str | None = None
    client_id: str | None = None
    quotation_number: str
    version: str | None = None
    total_amount: str
    total_tax: str
    consumption_tax_display: int
    fraction_calculation: int
    quotation_date: str
    expiry_date: str | None = None
    subject: str | None = None
    remarks: str | None = None
    special_notes: str | None = None
    items: list[QuotationItem]
    details: DestinationDetails | None = None


DestinationRecord = DeliveryRecord | InvoiceRecord | OrderRecord | QuotationRecord
