"""
In-flight generation registry.
At most one generation per (section, session) at a time within the process.
"""

import logging
import threading
from contextlib import contextmanager

from .errors import GenerationInProgress


logger = logging.getLogger(__name__)


class GenerationGuard:
    def __init__(self):
        self._lock = threading.Lock()
        self._active: set[tuple[int, int]] = set()

    @contextmanager
    def acquire(self, section_id: int, session_id: int):
        """
        Hold the (section, session) pair for the duration of the block.

        Raises:
            GenerationInProgress: another request holds the pair
        """
        key = (section_id, session_id)
        with self._lock:
            if key in self._active:
                logger.info(f"Rejected concurrent generation for section {section_id}, session {session_id}")
                raise GenerationInProgress(section_id, session_id)
            self._active.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._active.discard(key)

    def is_active(self, section_id: int, session_id: int) -> bool:
        with self._lock:
            return (section_id, session_id) in self._active


generation_guard = GenerationGuard()
