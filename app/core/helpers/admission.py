"""
Admission control for document processing jobs.

Caps how many jobs run per user and process-wide. Jobs over the cap are
told to come back later; nothing is queued.
"""
import logging
import threading
from typing import Dict, Optional

from app.core.config import settings
from app.core.exceptions import AdmissionDeferred

logger = logging.getLogger(__name__)


class AdmissionController:
    def __init__(
        self,
        max_per_user: Optional[int] = None,
        max_global: Optional[int] = None,
        user_retry_delay: Optional[float] = None,
        global_retry_delay: Optional[float] = None,
    ):
        self.max_per_user = max_per_user or settings.MAX_CONCURRENT_PER_USER
        self.max_global = max_global or settings.MAX_GLOBAL_CONCURRENT
        self.user_retry_delay = settings.USER_RETRY_DELAY if user_retry_delay is None else user_retry_delay
        self.global_retry_delay = settings.GLOBAL_RETRY_DELAY if global_retry_delay is None else global_retry_delay

        self._lock = threading.Lock()
        self._per_user: Dict[int, int] = {}
        self._global = 0

    def _check(self, user_id: int) -> Optional[AdmissionDeferred]:
        if self._per_user.get(user_id, 0) >= self.max_per_user:
            return AdmissionDeferred("user", self.user_retry_delay)
        if self._global >= self.max_global:
            return AdmissionDeferred("global", self.global_retry_delay)
        return None

    def acquire(self, user_id: int) -> None:
        """
        Take a slot for ``user_id``.

        Raises:
            AdmissionDeferred: If either ceiling is reached. ``retry_after``
                is the per-user or the global retry delay.
        """
        with self._lock:
            deferred = self._check(user_id)
            if deferred is None:
                self._per_user[user_id] = self._per_user.get(user_id, 0) + 1
                self._global += 1
        if deferred is not None:
            raise deferred

    def try_acquire(self, user_id: int) -> bool:
        try:
            self.acquire(user_id)
        except AdmissionDeferred:
            return False
        return True

    def release(self, user_id: int) -> None:
        with self._lock:
            current = self._per_user.get(user_id, 0)
            if current <= 0:
                logger.warning(f"[User: {user_id}] Release without a held slot ignored")
                return
            if current == 1:
                del self._per_user[user_id]
            else:
                self._per_user[user_id] = current - 1
            self._global -= 1

    def active_for(self, user_id: int) -> int:
        with self._lock:
            return self._per_user.get(user_id, 0)

    @property
    def active_global(self) -> int:
        with self._lock:
            return self._global

    def snapshot(self) -> Dict:
        with self._lock:
            return {
                "active_global": self._global,
                "max_global": self.max_global,
                "max_per_user": self.max_per_user,
                "active_per_user": dict(self._per_user),
            }
