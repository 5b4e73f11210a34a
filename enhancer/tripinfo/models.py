"""データモデル定義."""

from __future__ import annotations

from dataclasses import dataclass, field

from bs4 import Tag


@dataclass
class TripRow:
    """ページ上に表示されている1行の買い物トリップを表す."""

    element: Tag  # 行要素 (.trip-row-body)
    trip_number: str  # 表示されているトリップ番号
    annotated: bool = False  # 付加情報を挿入済みか


@dataclass
class TripDetails:
    """行に差し込む API 由来の表示情報."""

    status: str
    order_id: str
    domain: str
    order_amount: str  # 通貨フォーマット済み
    credit_amount: str  # 通貨フォーマット済み
    created_at: str  # ローカル日時フォーマット済み
    record: dict = field(repr=False)  # API レコードそのもの
