"""API レコードと表示行の照合モジュール.

索引の登録ルール:
  1. tripId は主キー。常にそのキーに登録する（上書き可）
  2. id / orderId は別名キー。空いている場合のみ登録する（先勝ち）
"""

from __future__ import annotations

import json
import logging
from datetime import datetime

from babel.core import UnknownLocaleError
from babel.dates import format_datetime
from babel.numbers import format_currency
from bs4 import BeautifulSoup, Tag
from dateutil import parser

from tripinfo.config import DEFAULT_CURRENCY, DISPLAY_LOCALE, ENHANCED_ATTR, PLACEHOLDER
from tripinfo.models import TripDetails, TripRow
from tripinfo.page import find_trip_rows

logger = logging.getLogger(__name__)

PRIMARY_KEY = "tripId"
ALIAS_KEYS = ("id", "orderId")


def _index_key(value) -> str | None:
    if value is None or value == "" or value is False:
        return None
    return str(value)


def build_trip_index(records: list[dict]) -> dict[str, dict]:
    """識別子文字列 → レコード の索引を作る."""
    index: dict[str, dict] = {}
    for record in records:
        key = _index_key(record.get(PRIMARY_KEY))
        if key:
            index[key] = record
        for alias in ALIAS_KEYS:
            key = _index_key(record.get(alias))
            if key:
                index.setdefault(key, record)
    return index


def format_money(amount, currency: str | None, locale: str = DISPLAY_LOCALE) -> str:
    """金額を通貨付きで表示用にフォーマットする. 小数点以下は2桁."""
    if amount is None:
        return PLACEHOLDER

    code = str(currency or DEFAULT_CURRENCY).upper()
    try:
        return format_currency(amount, code, locale=locale, currency_digits=False)
    except (ValueError, TypeError, ArithmeticError, UnknownLocaleError) as e:
        logger.debug("通貨フォーマット失敗: amount=%r, currency=%s, error=%s", amount, code, e)

    try:
        return f"{code} {float(amount):.2f}"
    except (TypeError, ValueError):
        return f"{code} {amount}"


def _parse_datetime(value: str) -> datetime:
    try:
        return parser.isoparse(value)
    except ValueError:
        return parser.parse(value)


def format_created_at(value, locale: str = DISPLAY_LOCALE) -> str:
    """作成日時をローカルタイムゾーンの日時表記にする.

    パースできない場合は元の文字列をそのまま返す。
    """
    if not value:
        return PLACEHOLDER

    try:
        dt = _parse_datetime(str(value))
    except (ValueError, OverflowError):
        return str(value)

    try:
        return format_datetime(dt.astimezone(), format="medium", locale=locale)
    except (OverflowError, ValueError):
        # 9999-12-31 など、ローカル時刻に変換すると範囲外になる値
        return str(value)


def build_trip_details(record: dict, locale: str = DISPLAY_LOCALE) -> TripDetails:
    return TripDetails(
        status=str(record.get("status") or PLACEHOLDER),
        order_id=str(record.get("orderId") or PLACEHOLDER),
        domain=str(record.get("domain") or PLACEHOLDER),
        order_amount=format_money(record.get("orderAmount"), record.get("orderCurrency"), locale),
        credit_amount=format_money(record.get("creditAmount"), record.get("creditCurrency"), locale),
        created_at=format_created_at(record.get("createdAt"), locale),
        record=record,
    )


def reconcile_rows(
    index: dict[str, dict], rows: list[TripRow], locale: str = DISPLAY_LOCALE
) -> list[tuple[TripRow, TripDetails]]:
    """未処理の行を索引と照合し、一致した行と表示情報の組を返す.

    行そのものは変更しない。索引に無い行（API 未同期のトリップなど）は無視する。
    """
    matches: list[tuple[TripRow, TripDetails]] = []
    for row in rows:
        if row.annotated:
            continue
        record = index.get(row.trip_number)
        if record is None:
            logger.debug("一致するレコードなし: trip_number=%s", row.trip_number)
            continue
        matches.append((row, build_trip_details(record, locale)))
    return matches


def _render_extra_info(details: TripDetails) -> Tag:
    factory = BeautifulSoup("", "html.parser")
    extra = factory.new_tag("div", attrs={"class": "c1s-extra-info"})

    cells = [
        ("Status", details.status),
        ("Order ID", details.order_id),
        ("Domain", details.domain),
        ("Order Amount", details.order_amount),
        ("Credit Amount", details.credit_amount),
        ("Created At (API)", details.created_at),
    ]
    for label, value in cells:
        cell = factory.new_tag("div")
        strong = factory.new_tag("strong")
        strong.string = f"{label}:"
        cell.append(strong)
        cell.append(f" {value}")
        extra.append(cell)

    raw = factory.new_tag("details", attrs={"class": "c1s-raw-json"})
    summary = factory.new_tag("summary")
    summary.string = "Raw JSON"
    pre = factory.new_tag("pre")
    pre.string = json.dumps(details.record, ensure_ascii=False, indent=2)
    raw.append(summary)
    raw.append(pre)
    extra.append(raw)
    return extra


def annotate_row(row: TripRow, details: TripDetails) -> None:
    """行に処理済みマークを付け、付加情報を差し込む."""
    if row.annotated:
        return
    row.element[ENHANCED_ATTR] = "1"
    row.element.append(_render_extra_info(details))
    row.annotated = True


def decorate_rows(index: dict[str, dict], container: Tag, locale: str = DISPLAY_LOCALE) -> int:
    """コンテナ内の未処理行をすべて照合・装飾し、装飾した行数を返す."""
    matches = reconcile_rows(index, find_trip_rows(container), locale)
    for row, details in matches:
        annotate_row(row, details)
    if matches:
        logger.info("%d 行に付加情報を挿入しました", len(matches))
    return len(matches)
