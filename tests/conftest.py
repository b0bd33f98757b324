"""Shared test fixtures for the extraction test suite."""

from pathlib import Path

import pytest

INVOICE_TEXT = """請求書
請求書番号: INV-2024-001
2024年1月15日
〒100-0001
東京都千代田区千代田1-1
株式会社サンプル商事
TEL 03-1234-5678
登録番号: T1234567890123
〒200-0002
神奈川県横浜市中区1-2-3
山田工業株式会社 御中
品名 数量 単位 単価 金額
Widget 10 pcs ¥500 ¥5,000
Gadget 2 box ¥1,200 ¥2,400
Thank you for your business
小計 ¥7,400
消費税 ¥740
合計 ¥8,140
銀行名: みずほ銀行
支店名: 渋谷支店
口座名義: カ)サンプルショウジ
口座番号: 1234567
普通
外税
四捨五入
備考: 月末締め
"""

DELIVERY_TEXT = """納品書
No. D-1001
2024/02/01
〒150-0001
東京都渋谷区神宮前1-2-3
ABC Trading Co., Ltd.
Phone: 03-9876-5432
Product Quantity Unit Price Amount
Copy paper 5 box 2,000 10,000
Toner pcs 3 8,000 24,000
Cable 1m 4 pcs 500 2,000 spare
Subtotal: 36,000
Tax: 3,600
Total: 39,600
Bank: Example Bank
税込
切り捨て
"""

QUOTATION_TEXT = """御見積書
見積番号: Q-2024-050
Ver. 2
2024年3月1日
有効期限: 2024年3月31日
件名: 事務用品一式
〒530-0001
大阪府大阪市北区梅田1-1-1
合同会社テスト
担当: 佐藤
支払条件: 月末締め翌月末払い
納期: 受注後2週間
納入場所: 貴社指定場所
商品名 数量 単位 単価 金額
ボールペン 100 本 120 12,000
ノート 50 冊 200 10,000
小計 22,000
消費税(10%) 2,200
合計(税込) 24,200
"""

ORDER_TEXT = """注文書
注文番号: PO-7788
2024-04-10
株式会社発注元
株式会社受注先 御中
納期: 2024-04-30
特記事項: 至急対応のこと
品名 数量 単位 単価 金額
部品A 10 個 300 3,000
部品B 5 個 1,000 5,000
小計 8,000
消費税 800
合計 8,800
"""


@pytest.fixture
def invoice_text() -> str:
    return INVOICE_TEXT


@pytest.fixture
def delivery_text() -> str:
    return DELIVERY_TEXT


@pytest.fixture
def quotation_text() -> str:
    return QUOTATION_TEXT


@pytest.fixture
def order_text() -> str:
    return ORDER_TEXT


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"
