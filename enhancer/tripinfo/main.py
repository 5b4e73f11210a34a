"""Shopping Trips 拡張 — メインエントリーポイント.

処理フロー:
  1. トリップ一覧のコンテナが現れるまで待機
  2. trip_orders API から全レコードを取得
  3. tripId / id / orderId で索引を作成
  4. 全レコードを JSON にエクスポート
  5. 表示中の各行に API の情報を差し込み、ページを書き出す
  6. （監視モード）行が増えるたびに 5 を繰り返す
"""

from __future__ import annotations

import logging
import sys
import time
from datetime import datetime

from bs4 import Tag

from tripinfo.config import (
    ENHANCED_HTML_PATH,
    EXPORT_ENABLED,
    LOG_DIR,
    PAGE_HTML_PATH,
    TRIPS_PAGE_URL,
    WATCH_INTERVAL,
    WATCH_MAX_ROUNDS,
)
from tripinfo.export import export_trips
from tripinfo.fetcher import create_session, fetch_all_trips
from tripinfo.page import (
    FilePageSource,
    HttpPageSource,
    save_enhanced_page,
    visible_trip_numbers,
    wait_for_container,
    watch_trip_list,
)
from tripinfo.reconciler import build_trip_index, decorate_rows

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    """ロギングの初期設定."""
    log_file = LOG_DIR / f"enhancer_{datetime.now().strftime('%Y%m%d')}.log"
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file, encoding="utf-8"),
        ],
    )


def enhance() -> None:
    """ページ拡張の本体. 例外は呼び出し側で処理する."""
    session = create_session()
    if PAGE_HTML_PATH:
        source = FilePageSource(PAGE_HTML_PATH)
    else:
        source = HttpPageSource(session, TRIPS_PAGE_URL)

    # 1. コンテナ待機
    container = wait_for_container(source)

    # 2. 全件取得（以降は変更しない）
    snapshot = tuple(fetch_all_trips(session))

    # 3. 索引作成
    index = build_trip_index(snapshot)
    logger.info("索引キー数: %d", len(index))

    # 4. エクスポート
    if EXPORT_ENABLED:
        export_trips(snapshot)

    # 5. 初回の装飾
    decorated = decorate_rows(index, container)
    save_enhanced_page(container, ENHANCED_HTML_PATH)
    logger.info("拡張を有効化しました: 装飾 %d 行", decorated)

    # 6. 行の追加を監視
    if WATCH_INTERVAL <= 0:
        return

    def on_list_changed(new_container: Tag) -> None:
        if decorate_rows(index, new_container):
            save_enhanced_page(new_container, ENHANCED_HTML_PATH)

    logger.info("表示行の監視を開始: interval=%.1f 秒", WATCH_INTERVAL)
    watch_trip_list(
        source,
        on_list_changed,
        initial_ids=visible_trip_numbers(container),
        interval=WATCH_INTERVAL,
        max_rounds=WATCH_MAX_ROUNDS or None,
    )


def run() -> None:
    """メイン処理. 失敗してもログに残して終了する."""
    setup_logging()
    logger.info("=== Shopping Trips 拡張 開始 ===")
    start_time = time.time()

    try:
        enhance()
    except KeyboardInterrupt:
        logger.info("監視を中断しました")
    except Exception:
        logger.exception("初期化エラー: 拡張を中止します")

    elapsed = time.time() - start_time
    logger.info("=== Shopping Trips 拡張 終了 (所要時間: %.1f 秒) ===", elapsed)


if __name__ == "__main__":
    run()
