"""Random image selection without repeats until the pool is exhausted."""

import logging
import random
import threading
from typing import Callable, List, Optional, Sequence

logger = logging.getLogger(__name__)


class RandomImagePicker:
    """Hand out image ids at random, avoiding repeats within a cycle.

    The id pool and the shown history live in process memory only. The pool
    is loaded lazily and reloaded whenever every id in it has been shown.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()
        self._lock = threading.Lock()
        self.pool: List[int] = []
        self.shown_ids: List[int] = []

    def reset(self) -> None:
        with self._lock:
            self.pool = []
            self.shown_ids = []

    def next(self, load_pool: Callable[[], Sequence[int]]) -> int:
        """Pick the next id, reloading the pool through ``load_pool`` as needed.

        Raises:
            LookupError: No ids are available.
        """
        with self._lock:
            shown = set(self.shown_ids)
            remaining = [image_id for image_id in self.pool if image_id not in shown]
            if not remaining:
                self.pool = list(dict.fromkeys(load_pool()))
                self.shown_ids = []
                remaining = list(self.pool)
                logger.info("Random image pool refreshed with %d ids", len(self.pool))

            if not remaining:
                raise LookupError("No images found")

            choice = self._rng.choice(remaining)
            self.shown_ids.append(choice)
            return choice


random_picker = RandomImagePicker()
