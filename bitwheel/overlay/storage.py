"""
오버레이 로컬 저장소 (브라우저 localStorage 대용 JSON 파일).

읽기/쓰기 실패는 모두 무시하고 DEBUG 로그만 남김. 메모리 상태는 계속 동작.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DONORS_KEY = "bitwheel_donors"
QUEUE_KEY = "bitwheel_queue"


class JsonStore:
    """키-값 저장소. 파일 전체를 dict 로 읽고 쓴다."""

    def __init__(self, path: Optional[Path]):
        self.path = Path(path) if path else None

    def _read_all(self) -> Dict[str, Any]:
        if self.path is None or not self.path.is_file():
            return {}
        data = json.loads(self.path.read_text(encoding="utf-8"))
        return data if isinstance(data, dict) else {}

    def get(self, key: str, default: Any = None) -> Any:
        try:
            return self._read_all().get(key, default)
        except (OSError, ValueError) as e:
            logger.debug("저장소 읽기 실패 (%s): %s", key, e)
            return default

    def set(self, key: str, value: Any) -> None:
        if self.path is None:
            return
        try:
            try:
                data = self._read_all()
            except ValueError:
                data = {}
            data[key] = value
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
            tmp.replace(self.path)
        except (OSError, TypeError, ValueError) as e:
            logger.debug("저장소 쓰기 실패 (%s): %s", key, e)
