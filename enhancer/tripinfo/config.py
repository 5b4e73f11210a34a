"""設定モジュール — 環境変数・定数定義."""

import os
from pathlib import Path

from dotenv import load_dotenv

# .env はプロジェクトルートに配置
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# --- Capital One Shopping ---
SITE_URL: str = os.environ.get("C1S_SITE_URL", "https://capitaloneshopping.com")
API_BASE: str = os.environ.get("C1S_API_BASE", f"{SITE_URL}/api/v1/trip_orders")
TRIPS_PAGE_URL: str = os.environ.get(
    "C1S_TRIPS_PAGE_URL", f"{SITE_URL}/account-settings/shopping-trips"
)

# ブラウザからコピーした Cookie ヘッダ（セッションは有効である前提）
SESSION_COOKIE: str = os.environ.get("C1S_SESSION_COOKIE", "")

# 保存済み HTML を使う場合のパス（空なら HTTP で取得）
PAGE_HTML_PATH: str = os.environ.get("C1S_PAGE_HTML_PATH", "")

# --- User-Agent ---
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)

# --- API ページング ---
PAGE_SIZE = int(os.environ.get("C1S_PAGE_SIZE", "50"))
MAX_PAGES = int(os.environ.get("C1S_MAX_PAGES", "200"))  # 無限ループ防止
REQUEST_TIMEOUT = float(os.environ.get("C1S_REQUEST_TIMEOUT", "15"))  # 秒

# --- ページ監視 ---
READY_TIMEOUT = float(os.environ.get("C1S_READY_TIMEOUT", "60"))  # 秒
READY_POLL_INTERVAL = float(os.environ.get("C1S_READY_POLL_INTERVAL", "1.0"))
WATCH_INTERVAL = float(os.environ.get("C1S_WATCH_INTERVAL", "0"))  # 0 = 監視しない
WATCH_MAX_ROUNDS = int(os.environ.get("C1S_WATCH_MAX_ROUNDS", "0"))  # 0 = 無制限

# --- セレクタ ---
CONTAINER_SELECTOR = ".cashback-trips-page .shopping-trips-container"
ROW_SELECTOR = ".cashback-trip-container .trip-row-body"
TRIP_NUMBER_SELECTOR = ".trip-number-content"
ENHANCED_ATTR = "data-c1s-enhanced"

# --- 表示 ---
DISPLAY_LOCALE: str = os.environ.get("C1S_DISPLAY_LOCALE", "en_US")
DEFAULT_CURRENCY = "USD"
PLACEHOLDER = "—"

# --- 出力 ---
OUTPUT_DIR = Path(__file__).resolve().parent.parent / "output"
EXPORT_DIR = Path(os.environ.get("C1S_EXPORT_DIR", str(OUTPUT_DIR)))
EXPORT_ENABLED = os.environ.get("C1S_EXPORT_ENABLED", "1") not in ("0", "false", "False", "")
EXPORT_SOURCE: str = os.environ.get("C1S_EXPORT_SOURCE", "c1s")
ENHANCED_HTML_PATH = Path(
    os.environ.get("C1S_ENHANCED_HTML_PATH", str(OUTPUT_DIR / "shopping_trips_enhanced.html"))
)

# --- ログ ---
LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
LOG_DIR.mkdir(exist_ok=True)
