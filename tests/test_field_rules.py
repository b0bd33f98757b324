"""Tests for the rule-based field extractor."""

import re

import pytest

from chohyo.extraction.document import (
    BankAccountType,
    DocumentType,
    FractionCalculation,
    TaxDisplay,
)
from chohyo.extraction.field_rules import (
    FIELD_RULES,
    FieldExtractor,
    FieldRule,
    Strategy,
)


class TestFirstMatchFields:
    """Tests for fields captured from their first occurrence."""

    def setup_method(self) -> None:
        self.extractor = FieldExtractor()

    def test_document_number(self) -> None:
        assert self.extractor.extract_field("No. ABC-123", "document_number") == "ABC-123"
        assert self.extractor.extract_field("Invoice #42", "document_number") == "42"
        assert (
            self.extractor.extract_field("見積番号: Q-2024-050", "document_number")
            == "Q-2024-050"
        )

    def test_version(self) -> None:
        assert self.extractor.extract_field("version 1.2", "version") == "1.2"
        assert self.extractor.extract_field("Ver. 2", "version") == "2"

    def test_issue_date_is_first_date(self) -> None:
        text = "発行日 2024年3月1日\n有効期限: 2024年3月31日"
        values = self.extractor.extract(text)
        assert values["issue_date"] == "2024年3月1日"
        assert values["expiry_date"] == "2024年3月31日"

    def test_issue_date_formats(self) -> None:
        assert self.extractor.extract_field("Date: 01/15/2024", "issue_date") == "01/15/2024"
        assert self.extractor.extract_field("2024-04-10", "issue_date") == "2024-04-10"

    def test_phone(self) -> None:
        assert (
            self.extractor.extract_field("電話番号: 06-1111-2222", "company_phone")
            == "06-1111-2222"
        )
        assert (
            self.extractor.extract_field("Phone: +81-3-1234-5678", "company_phone")
            == "+81-3-1234-5678"
        )

    def test_registration_number(self) -> None:
        text = "Registration No. T9876543210123"
        assert (
            self.extractor.extract_field(text, "company_registration_number")
            == "T9876543210123"
        )

    def test_unmatched_field_is_empty_string(self) -> None:
        assert self.extractor.extract_field("nothing here", "document_number") == ""

    def test_unknown_field_raises(self) -> None:
        with pytest.raises(KeyError):
            self.extractor.extract_field("text", "no_such_field")

    def test_ordinal_rule_name_is_not_a_field(self) -> None:
        assert "postal_code" not in self.extractor.field_names
        with pytest.raises(KeyError):
            self.extractor.extract_field("〒100-0001", "postal_code")


class TestTotals:
    """Tests for subtotal, tax and grand total capture."""

    def setup_method(self) -> None:
        self.extractor = FieldExtractor()

    def test_english_totals(self) -> None:
        values = self.extractor.extract("Subtotal: 1,000\nTax: 100\nTotal: 1,100")
        assert values["total_amount"] == "1,000"
        assert values["total_tax"] == "100"
        assert values["grand_total"] == "1,100"

    def test_grand_total_amount_is_not_subtotal(self) -> None:
        values = self.extractor.extract("合計金額 ¥12,345")
        assert values["grand_total"] == "12,345"
        assert "total_amount" not in values

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("合計 ￥5,500", "5,500"),
            ("合計 ¥5,500", "5,500"),
            ("Total $1,234.50", "1,234.50"),
            ("合計(税込) 24,200", "24,200"),
        ],
    )
    def test_currency_glyphs(self, text: str, expected: str) -> None:
        assert self.extractor.extract_field(text, "grand_total") == expected

    def test_tax_with_rate_in_parentheses(self) -> None:
        assert self.extractor.extract_field("消費税(10%) 2,200", "total_tax") == "2,200"
        assert self.extractor.extract_field("消費税（8%）: 80", "total_tax") == "80"


class TestOrdinalFields:
    """Tests for postal codes, names and addresses assigned by order."""

    def setup_method(self) -> None:
        self.extractor = FieldExtractor()

    def test_postal_codes_in_order(self) -> None:
        values = self.extractor.extract("〒100-0001\n〒200-0002\n〒300-0003")
        assert values["company_postal_code"] == "100-0001"
        assert values["client_postal_code"] == "200-0002"

    def test_single_postal_code_fills_company_only(self) -> None:
        values = self.extractor.extract("〒 1234567")
        assert values["company_postal_code"] == "1234567"
        assert "client_postal_code" not in values

    def test_company_then_client(self) -> None:
        values = self.extractor.extract("株式会社エー\n有限会社ビー\n")
        assert values["company_name"] == "株式会社エー"
        assert values["client_name"] == "有限会社ビー"

    def test_salutation_overrides_client(self) -> None:
        values = self.extractor.extract("株式会社エー\n株式会社ビー\nシー商店 御中\n")
        assert values["company_name"] == "株式会社エー"
        assert values["client_name"] == "シー商店"

    def test_salutation_without_corporate_suffix(self) -> None:
        values = self.extractor.extract("山田商事 御中\nABC Trading Co., Ltd.")
        assert values["company_name"] == "ABC Trading Co., Ltd."
        assert values["client_name"] == "山田商事"

    def test_addresses_follow_postal_codes(self) -> None:
        text = "〒100-0001\n東京都千代田区1-1\n〒530-0001 大阪府大阪市北区2-2"
        values = self.extractor.extract(text)
        assert values["company_address"] == "東京都千代田区1-1"
        assert values["client_address"] == "大阪府大阪市北区2-2"


class TestFlagFields:
    """Tests for keyword flags and their last-write-wins resolution."""

    def setup_method(self) -> None:
        self.extractor = FieldExtractor()

    def test_absent_keywords_leave_flags_unset(self) -> None:
        values = self.extractor.extract("plain text")
        assert "consumption_tax_display" not in values
        assert "fraction_calculation" not in values

    def test_tax_display(self) -> None:
        assert self.extractor.extract("外税")["consumption_tax_display"] == TaxDisplay.EXCLUSIVE
        assert self.extractor.extract("税込")["consumption_tax_display"] == TaxDisplay.INCLUSIVE

    def test_later_rule_wins_regardless_of_position(self) -> None:
        assert (
            self.extractor.extract("外税 内税")["consumption_tax_display"]
            == TaxDisplay.INCLUSIVE
        )
        assert (
            self.extractor.extract("内税\n外税")["consumption_tax_display"]
            == TaxDisplay.INCLUSIVE
        )

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("切り捨て", FractionCalculation.FLOOR),
            ("切捨て", FractionCalculation.FLOOR),
            ("Round down", FractionCalculation.FLOOR),
            ("切り上げ", FractionCalculation.CEIL),
            ("四捨五入", FractionCalculation.ROUND),
            ("切り上げ 切り捨て", FractionCalculation.CEIL),
            ("四捨五入 切り上げ", FractionCalculation.ROUND),
        ],
    )
    def test_fraction_calculation(
        self, text: str, expected: FractionCalculation
    ) -> None:
        assert self.extractor.extract(text)["fraction_calculation"] == expected

    def test_flag_as_string(self) -> None:
        assert self.extractor.extract_field("内税", "consumption_tax_display") == "1"
        assert self.extractor.extract_field("切り上げ", "fraction_calculation") == "1"

    def test_bank_account_type(self) -> None:
        values = self.extractor.extract("普通 当座", DocumentType.INVOICE)
        assert values["bank_account_type"] == BankAccountType.CURRENT


class TestDocumentTypeGating:
    """Tests for rules restricted to some document types."""

    def setup_method(self) -> None:
        self.extractor = FieldExtractor()

    def test_bank_fields_only_for_invoices(self) -> None:
        text = "Bank: Example Bank\n口座番号: 1234567"
        invoice = self.extractor.extract(text, DocumentType.INVOICE)
        delivery = self.extractor.extract(text, DocumentType.DELIVERY)
        assert invoice["bank_name"] == "Example Bank"
        assert invoice["bank_account_number"] == "1234567"
        assert "bank_name" not in delivery
        assert "bank_account_number" not in delivery

    def test_untyped_extraction_runs_every_rule(self) -> None:
        assert self.extractor.extract("Bank: Example Bank")["bank_name"] == "Example Bank"

    def test_closing_date_only_for_invoices(self) -> None:
        text = "締日: 2024/01/31"
        assert self.extractor.extract(text, DocumentType.INVOICE)["closing_date"] == "2024/01/31"
        assert "closing_date" not in self.extractor.extract(text, DocumentType.ORDER)

    def test_details_for_orders_and_quotations(self) -> None:
        text = "納期: 受注後2週間\n支払条件: 月末払い"
        order = self.extractor.extract(text, DocumentType.ORDER)
        invoice = self.extractor.extract(text, DocumentType.INVOICE)
        assert order["delivery_date"] == "受注後2週間"
        assert order["payment_terms"] == "月末払い"
        assert "delivery_date" not in invoice

    def test_subject_only_for_quotations(self) -> None:
        text = "件名: 事務用品一式"
        assert self.extractor.extract(text, DocumentType.QUOTATION)["subject"] == "事務用品一式"
        assert "subject" not in self.extractor.extract(text, DocumentType.INVOICE)


class TestFreeText:
    """Tests for remarks and special notes."""

    def setup_method(self) -> None:
        self.extractor = FieldExtractor()

    def test_special_notes_do_not_become_remarks(self) -> None:
        values = self.extractor.extract("Special notes: rush\nNotes: fragile")
        assert values["special_notes"] == "rush"
        assert values["remarks"] == "fragile"

    def test_japanese_remarks(self) -> None:
        assert self.extractor.extract_field("備考: 月末締め", "remarks") == "月末締め"


class TestFieldExtractor:
    """Tests for rule table evaluation."""

    def test_find_reports_positions(self) -> None:
        found = FieldExtractor().find("合計 1,000")
        grand = [f for f in found if f.field_name == "grand_total"]
        assert len(grand) == 1
        assert grand[0].value == "1,000"
        assert grand[0].start_pos == 0
        assert grand[0].end_pos == len("合計 1,000")

    def test_ordinal_fields_report_rule_name(self) -> None:
        found = FieldExtractor().find("〒100-0001 〒200-0002")
        postal = [f for f in found if f.rule_name == "postal_code"]
        assert [f.field_name for f in postal] == [
            "company_postal_code",
            "client_postal_code",
        ]

    def test_later_rule_overwrites_earlier(self) -> None:
        rules = (
            FieldRule("code", re.compile(r"A(\d)")),
            FieldRule("code", re.compile(r"B(\d)")),
        )
        extractor = FieldExtractor(rules)
        assert extractor.extract("B2 A1") == {"code": "2"}
        assert extractor.extract("A1") == {"code": "1"}

    def test_custom_flag_rule(self) -> None:
        rules = (FieldRule("urgent", re.compile("至急"), Strategy.FLAG, flag_value=True),)
        assert FieldExtractor(rules).extract("至急") == {"urgent": True}

    def test_default_table(self) -> None:
        assert FieldExtractor().rules is FIELD_RULES

    def test_extract_is_deterministic(self, invoice_text: str) -> None:
        extractor = FieldExtractor()
        assert extractor.extract(invoice_text) == extractor.extract(invoice_text)

    def test_sample_invoice(self, invoice_text: str) -> None:
        values = FieldExtractor().extract(invoice_text, DocumentType.INVOICE)
        assert values["document_number"] == "INV-2024-001"
        assert values["issue_date"] == "2024年1月15日"
        assert values["company_name"] == "株式会社サンプル商事"
        assert values["client_name"] == "山田工業株式会社"
        assert values["company_postal_code"] == "100-0001"
        assert values["client_postal_code"] == "200-0002"
        assert values["company_address"] == "東京都千代田区千代田1-1"
        assert values["client_address"] == "神奈川県横浜市中区1-2-3"
        assert values["company_phone"] == "03-1234-5678"
        assert values["company_registration_number"] == "T1234567890123"
        assert values["total_amount"] == "7,400"
        assert values["total_tax"] == "740"
        assert values["grand_total"] == "8,140"
        assert values["bank_name"] == "みずほ銀行"
        assert values["bank_branch_name"] == "渋谷支店"
        assert values["bank_account_name"] == "カ)サンプルショウジ"
        assert values["bank_account_number"] == "1234567"
        assert values["bank_account_type"] == BankAccountType.ORDINARY
        assert values["consumption_tax_display"] == TaxDisplay.EXCLUSIVE
        assert values["fraction_calculation"] == FractionCalculation.ROUND
        assert values["remarks"] == "月末締め"
