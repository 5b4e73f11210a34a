"""Shopping Trips ページ（ホスト側 HTML）の取得・監視モジュール.

ページは HTTP（ログイン済み Cookie 付き）または保存済み HTML ファイルから読み込み、
BeautifulSoup でパースしたツリーを DOM として扱う。
ブラウザが無いため、要素の出現や行の追加はポーリングで検出する。
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Protocol

import requests
from bs4 import BeautifulSoup, Tag

from tripinfo.config import (
    CONTAINER_SELECTOR,
    ENHANCED_ATTR,
    READY_POLL_INTERVAL,
    READY_TIMEOUT,
    REQUEST_TIMEOUT,
    ROW_SELECTOR,
    TRIP_NUMBER_SELECTOR,
    WATCH_INTERVAL,
)
from tripinfo.models import TripRow

logger = logging.getLogger(__name__)


class ContainerNotFoundError(Exception):
    """タイムアウトまでにリストのコンテナが現れなかった."""


class PageSource(Protocol):
    def load(self) -> BeautifulSoup: ...


class HttpPageSource:
    """ログイン済みセッションでページ HTML を取得する."""

    def __init__(self, session: requests.Session, url: str):
        self.session = session
        self.url = url

    def load(self) -> BeautifulSoup:
        resp = self.session.get(
            self.url,
            headers={"Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"},
            timeout=REQUEST_TIMEOUT,
        )
        resp.raise_for_status()
        return BeautifulSoup(resp.text, "html.parser")


class FilePageSource:
    """ブラウザで保存した HTML ファイルを読み込む."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> BeautifulSoup:
        return BeautifulSoup(self.path.read_text(encoding="utf-8"), "html.parser")


def _select_container(source: PageSource, selector: str) -> Tag | None:
    try:
        soup = source.load()
    except (requests.RequestException, OSError) as e:
        logger.warning("ページ読み込み失敗（再試行します）: %s", e)
        return None
    return soup.select_one(selector)


def wait_for_container(
    source: PageSource,
    selector: str = CONTAINER_SELECTOR,
    timeout: float = READY_TIMEOUT,
    interval: float = READY_POLL_INTERVAL,
) -> Tag:
    """リストのコンテナ要素が現れるまで待つ.

    既に存在すれば即座に返す。見つかった時点でポーリングを終了する（一度きり）。

    Raises:
        ContainerNotFoundError: timeout 秒以内に見つからなかった場合
    """
    container = _select_container(source, selector)
    if container is not None:
        return container

    logger.info("コンテナ待機中: selector=%s", selector)
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        time.sleep(interval)
        container = _select_container(source, selector)
        if container is not None:
            logger.info("コンテナを検出しました")
            return container

    raise ContainerNotFoundError(f"{timeout:.0f} 秒以内に {selector} が見つかりません")


def find_trip_rows(container: Tag) -> list[TripRow]:
    """コンテナ内の行を列挙する. トリップ番号要素を持たない行は除外."""
    rows: list[TripRow] = []
    for element in container.select(ROW_SELECTOR):
        id_elem = element.select_one(TRIP_NUMBER_SELECTOR)
        if id_elem is None:
            continue
        rows.append(TripRow(
            element=element,
            trip_number=id_elem.get_text().strip(),
            annotated=element.get(ENHANCED_ATTR) == "1",
        ))
    return rows


def visible_trip_numbers(container: Tag) -> tuple[str, ...]:
    return tuple(r.trip_number for r in find_trip_rows(container))


def watch_trip_list(
    source: PageSource,
    on_change: Callable[[Tag], None],
    initial_ids: tuple[str, ...] = (),
    selector: str = CONTAINER_SELECTOR,
    interval: float = WATCH_INTERVAL,
    max_rounds: int | None = None,
) -> None:
    """ページを定期的に読み直し、表示行が変わるたびに on_change を呼ぶ.

    「もっと見る」で行が増えた場合などを想定。max_rounds が None なら
    セッションが終わる（中断される）まで監視を続ける。
    """
    last_ids = initial_ids
    rounds = 0
    while max_rounds is None or rounds < max_rounds:
        rounds += 1
        time.sleep(interval)

        container = _select_container(source, selector)
        if container is None:
            continue

        ids = visible_trip_numbers(container)
        if ids == last_ids:
            continue

        logger.info("表示行の変化を検出: %d 行 → %d 行", len(last_ids), len(ids))
        last_ids = ids
        on_change(container)


def save_enhanced_page(container: Tag, path: str | Path) -> Path:
    """コンテナを含むドキュメント全体を HTML として書き出す."""
    root = container
    for parent in container.parents:
        root = parent

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(str(root), encoding="utf-8")
    logger.info("拡張済みページを書き出しました: %s", path)
    return path
