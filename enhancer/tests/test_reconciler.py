"""reconciler モジュールのユニットテスト."""

import json
from pathlib import Path

from bs4 import BeautifulSoup

from tripinfo.config import CONTAINER_SELECTOR, ENHANCED_ATTR, PLACEHOLDER
from tripinfo.page import find_trip_rows
from tripinfo.reconciler import (
    annotate_row,
    build_trip_details,
    build_trip_index,
    decorate_rows,
    format_created_at,
    format_money,
    reconcile_rows,
)

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def _load_container():
    html = (FIXTURES_DIR / "shopping_trips.html").read_text(encoding="utf-8")
    soup = BeautifulSoup(html, "html.parser")
    return soup.select_one(CONTAINER_SELECTOR)


def _load_records() -> list[dict]:
    data = json.loads((FIXTURES_DIR / "trip_orders_page1.json").read_text(encoding="utf-8"))
    return data["items"]


class TestBuildTripIndex:
    """build_trip_index のテスト."""

    def test_all_keys_indexed(self):
        records = _load_records()
        index = build_trip_index(records)

        assert index["TRIP-1001"] is records[0]
        assert index["1001"] is records[0]
        assert index["ORD-1001"] is records[0]
        assert index["ORD-2002"] is records[1]

    def test_alias_first_wins(self):
        """tripId を持たず orderId が同じ場合、先に登録したレコードが残ること."""
        a = {"orderId": "O-1", "status": "a"}
        b = {"orderId": "O-1", "status": "b"}
        index = build_trip_index([a, b])

        assert index["O-1"] is a

    def test_trip_id_overrides_earlier_alias(self):
        """先に別名キーで登録されていても tripId が優先されること."""
        a = {"id": "T-1", "status": "alias"}
        b = {"tripId": "T-1", "status": "primary"}
        index = build_trip_index([a, b])

        assert index["T-1"] is b

    def test_trip_id_not_overwritten_by_later_alias(self):
        a = {"tripId": "T-1", "status": "primary"}
        b = {"orderId": "T-1", "status": "alias"}
        index = build_trip_index([a, b])

        assert index["T-1"] is a

    def test_empty_values_skipped(self):
        index = build_trip_index([{"tripId": "", "id": None, "orderId": "O-9"}])
        assert list(index) == ["O-9"]

    def test_numeric_ids_stringified(self):
        record = {"id": 42}
        index = build_trip_index([record])
        assert index["42"] is record


class TestFormatMoney:
    """format_money のテスト."""

    def test_usd(self):
        assert format_money(12.5, "USD", locale="en_US") == "$12.50"

    def test_grouping(self):
        assert format_money(1234.5, "USD", locale="en_US") == "$1,234.50"

    def test_lowercase_currency(self):
        assert format_money(12.5, "usd", locale="en_US") == "$12.50"

    def test_default_currency(self):
        assert format_money(40, None, locale="en_US") == "$40.00"

    def test_missing_amount(self):
        assert format_money(None, "USD") == PLACEHOLDER

    def test_fallback(self):
        """フォーマットできない値は "<通貨> <金額>" になること."""
        assert format_money("abc", "USD", locale="en_US") == "USD abc"


class TestFormatCreatedAt:
    """format_created_at のテスト."""

    def test_unparsable_kept(self):
        assert format_created_at("not-a-date") == "not-a-date"

    def test_out_of_range_kept(self):
        """ローカル時刻への変換で範囲外になる値は元の文字列を返すこと."""
        value = "9999-12-31T23:00:00-05:00"
        assert format_created_at(value) == value

    def test_missing(self):
        assert format_created_at(None) == PLACEHOLDER
        assert format_created_at("") == PLACEHOLDER

    def test_iso_formatted(self):
        text = format_created_at("2024-06-15T12:00:00Z", locale="en_US")
        assert text != "2024-06-15T12:00:00Z"
        assert "2024" in text
        assert "Jun" in text


class TestBuildTripDetails:
    """build_trip_details のテスト."""

    def test_fields(self):
        record = {"tripId": "t1", "orderAmount": 12.5, "orderCurrency": "USD"}
        details = build_trip_details(record, locale="en_US")

        assert details.order_amount == "$12.50"
        assert details.credit_amount == PLACEHOLDER
        assert details.status == PLACEHOLDER
        assert details.order_id == PLACEHOLDER
        assert details.record is record


class TestReconcileRows:
    """reconcile_rows のテスト."""

    def test_matches(self):
        container = _load_container()
        index = build_trip_index(_load_records())
        matches = reconcile_rows(index, find_trip_rows(container))

        assert [row.trip_number for row, _ in matches] == ["TRIP-1001", "ORD-2002"]
        assert matches[1][1].created_at == "not-a-date"

    def test_does_not_mutate(self):
        """照合だけでは行が変更されないこと."""
        container = _load_container()
        before = str(container)
        reconcile_rows(build_trip_index(_load_records()), find_trip_rows(container))

        assert str(container) == before

    def test_unknown_row_ignored(self):
        container = _load_container()
        matches = reconcile_rows({}, find_trip_rows(container))
        assert matches == []


class TestDecorateRows:
    """decorate_rows / annotate_row のテスト."""

    def test_decorate(self):
        container = _load_container()
        count = decorate_rows(build_trip_index(_load_records()), container, locale="en_US")

        assert count == 2
        extras = container.select(".c1s-extra-info")
        assert len(extras) == 2
        assert "Order Amount: $1,234.50" in extras[0].get_text()
        assert "Domain: another-shop.com" in extras[1].get_text()
        assert '"tripId": "TRIP-1001"' in extras[0].select_one(".c1s-raw-json pre").get_text()

    def test_out_of_range_date_does_not_block_other_rows(self):
        """範囲外の日時を持つレコードがあっても全行が装飾されること."""
        html = (
            '<div class="shopping-trips-container">'
            '<div class="cashback-trip-container"><div class="trip-row-body">'
            '<span class="trip-number-content">T-1</span></div></div>'
            '<div class="cashback-trip-container"><div class="trip-row-body">'
            '<span class="trip-number-content">T-2</span></div></div>'
            "</div>"
        )
        container = BeautifulSoup(html, "html.parser").div
        index = build_trip_index([
            {"tripId": "T-1", "createdAt": "2024-06-15T12:00:00Z"},
            {"tripId": "T-2", "createdAt": "9999-12-31T23:00:00-05:00"},
        ])

        assert decorate_rows(index, container) == 2
        assert "9999-12-31T23:00:00-05:00" in container.select(".c1s-extra-info")[1].get_text()

    def test_unmatched_row_untouched(self):
        """索引に無い行はマークも付加情報も付かないこと."""
        container = _load_container()
        decorate_rows(build_trip_index(_load_records()), container)

        row = [r for r in find_trip_rows(container) if r.trip_number == "TRIP-9999"][0]
        assert row.element.get(ENHANCED_ATTR) is None
        assert row.element.select_one(".c1s-extra-info") is None

    def test_idempotent(self):
        """2回目の実行では何も変更されないこと."""
        container = _load_container()
        index = build_trip_index(_load_records())
        decorate_rows(index, container)
        after_first = str(container)

        assert decorate_rows(index, container) == 0
        assert str(container) == after_first

    def test_annotate_marks_row(self):
        container = _load_container()
        row = find_trip_rows(container)[0]
        annotate_row(row, build_trip_details({"tripId": "TRIP-1001"}))

        assert row.annotated
        assert row.element[ENHANCED_ATTR] == "1"
        assert find_trip_rows(container)[0].annotated
