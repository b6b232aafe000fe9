"""
延遲清除排程：以 key（match_id）管理 asyncio 的 call_later

同一個 key 再排程會取代舊的；對局若被重新開啟可以 cancel。
"""
import asyncio
import logging
from typing import Callable, Dict

logger = logging.getLogger(__name__)


class RetentionScheduler:
    def __init__(self):
        self._handles: Dict[str, asyncio.TimerHandle] = {}

    def schedule(self, key: str, delay: float, callback: Callable[[], None]) -> None:
        """delay 秒後執行 callback（必須在 event loop 內呼叫）"""
        self.cancel(key)
        loop = asyncio.get_running_loop()
        self._handles[key] = loop.call_later(delay, self._fire, key, callback)
        logger.debug(f"Scheduled cleanup for {key} in {delay}s")

    def cancel(self, key: str) -> bool:
        handle = self._handles.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def pending(self, key: str) -> bool:
        return key in self._handles

    def pending_count(self) -> int:
        return len(self._handles)

    def shutdown(self) -> None:
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()

    def _fire(self, key: str, callback: Callable[[], None]) -> None:
        self._handles.pop(key, None)
        try:
            callback()
        except Exception as e:
            logger.error(f"Scheduled task for {key} failed: {e}", exc_info=True)
