"""trip_orders API の全件取得モジュール.

取得戦略:
  1. offset=0 から limit 件ずつ sort=desc で順番に取得
  2. 返却件数が limit 未満になったら最終ページとみなして終了
  3. 通信エラー・HTTP エラー・レスポンス不正の場合はそこまでの結果を返す
"""

from __future__ import annotations

import logging
from urllib.parse import urlencode

import requests

from tripinfo.config import (
    API_BASE,
    MAX_PAGES,
    PAGE_SIZE,
    REQUEST_TIMEOUT,
    SESSION_COOKIE,
    USER_AGENT,
)

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """1ページ分の取得に失敗したことを表す."""


class TransportError(FetchError):
    """API に到達できなかった."""


class HttpError(FetchError):
    """API が成功以外のステータスを返した."""

    def __init__(self, status_code: int, url: str):
        super().__init__(f"HTTP {status_code}: {url}")
        self.status_code = status_code
        self.url = url


class ParseError(FetchError):
    """レスポンスボディが想定の形式ではなかった."""


def create_session(cookie: str = SESSION_COOKIE) -> requests.Session:
    """ログイン済みセッションの Cookie を付与した Session を作る."""
    session = requests.Session()
    session.headers.update({
        "User-Agent": USER_AGENT,
        "Accept": "application/json, text/plain, */*",
        "Accept-Language": "en-US,en;q=0.9",
    })
    if cookie:
        session.headers["Cookie"] = cookie
    return session


def build_page_url(api_base: str, limit: int, offset: int) -> str:
    query = urlencode({"limit": limit, "offset": offset, "sort": "desc"})
    return f"{api_base}?{query}"


def fetch_trip_page(
    session: requests.Session,
    offset: int,
    api_base: str = API_BASE,
    limit: int = PAGE_SIZE,
) -> list[dict]:
    """指定 offset の1ページ分のレコードを取得する.

    Returns:
        items 配列。items が無い・null の場合は空リスト。

    Raises:
        TransportError: 通信エラー
        HttpError: 成功以外のステータス
        ParseError: JSON でない、またはオブジェクト/配列の形が不正
    """
    url = build_page_url(api_base, limit, offset)
    logger.info("取得中: %s", url)

    try:
        resp = session.get(url, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        raise TransportError(f"{url}: {e}") from e

    if not 200 <= resp.status_code < 300:
        raise HttpError(resp.status_code, url)

    try:
        data = resp.json()
    except ValueError as e:
        raise ParseError(f"JSON パースエラー: {url}: {e}") from e

    if not isinstance(data, dict):
        raise ParseError(f"オブジェクトではないレスポンス: {url}")

    items = data.get("items") or []
    if not isinstance(items, list):
        raise ParseError(f"items が配列ではありません: {url}")
    if not all(isinstance(item, dict) for item in items):
        raise ParseError(f"オブジェクトではない要素を含みます: {url}")
    return items


def fetch_all_trips(
    session: requests.Session,
    api_base: str = API_BASE,
    page_size: int = PAGE_SIZE,
    max_pages: int = MAX_PAGES,
) -> list[dict]:
    """全ページを順番に取得し、サーバーの返却順のまま連結して返す.

    途中でエラーが起きた場合はそこまでに取得できた分を返す。
    """
    all_items: list[dict] = []
    offset = 0

    for _ in range(max_pages):
        try:
            items = fetch_trip_page(session, offset, api_base=api_base, limit=page_size)
        except HttpError as e:
            logger.error("非 OK レスポンス: status=%d, url=%s", e.status_code, e.url)
            break
        except FetchError as e:
            logger.error("ページ取得失敗: offset=%d, error=%s", offset, e)
            break

        all_items.extend(items)
        if len(items) < page_size:
            break
        offset += page_size
    else:
        logger.warning(
            "最大ページ数 %d に達したため取得を打ち切ります (offset=%d)",
            max_pages, offset,
        )

    logger.info("取得件数合計: %d 件", len(all_items))
    return all_items
