"""取得した全レコードの JSON エクスポート."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Sequence

from tripinfo.config import EXPORT_DIR, EXPORT_SOURCE

logger = logging.getLogger(__name__)


def export_file_name(source: str = EXPORT_SOURCE) -> str:
    return f"{source}_trip_orders.json"


def export_trips(
    records: Sequence[dict],
    output_dir: str | Path = EXPORT_DIR,
    source: str = EXPORT_SOURCE,
) -> Path:
    """全レコードを取得順のまま整形 JSON で書き出す.

    Returns:
        書き出したファイルのパス
    """
    path = Path(output_dir) / export_file_name(source)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(list(records), ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info("%s に %d 件書き出し", path, len(records))
    return path
