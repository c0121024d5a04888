"""
Fan-out writer used for --output both.
"""

import logging
from typing import Dict, Any, List

from .base import Writer

LOG = logging.getLogger(__name__)


class MultiWriter(Writer):
    """
    Hands every batch of measurements to each wrapped writer in turn.

    A failing writer does not stop the others from receiving the batch.
    """

    def __init__(self, writers: List[Writer]):
        self.writers = list(writers)
        LOG.info(f"MultiWriter wrapping {self._names()}")

    def _names(self) -> List[str]:
        return [type(w).__name__ for w in self.writers]

    def write(self, data: Dict[str, Any], loop_iteration: int = 1) -> bool:
        """
        Returns:
            True only if every wrapped writer reported success
        """
        failed = []
        for writer in self.writers:
            if not writer.write(data, loop_iteration):
                failed.append(type(writer).__name__)

        if failed:
            LOG.error(f"Iteration {loop_iteration}: {len(failed)}/{len(self.writers)} writers failed: {failed}")
            return False
        LOG.debug(f"Iteration {loop_iteration}: all {len(self.writers)} writers succeeded")
        return True

    def close(self, timeout_seconds=90, force_exit_on_timeout=False):
        for writer in self.writers:
            writer.close(timeout_seconds=timeout_seconds, force_exit_on_timeout=force_exit_on_timeout)
        LOG.info(f"Closed {self._names()}")

    def __repr__(self) -> str:
        return f"MultiWriter({', '.join(self._names())})"
