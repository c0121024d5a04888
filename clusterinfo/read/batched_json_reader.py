"""
Batched reader for timestamped snapshot files.
Groups snapshot files by time window and serves them in chronological batches.
"""

import os
import glob
import logging
from typing import Dict, List, Optional, Tuple
from datetime import datetime, timezone
from itertools import groupby

from .json_reader import JsonReader

logger = logging.getLogger(__name__)


def parse_snapshot_name(filename: str) -> Optional[Tuple[str, str, int]]:
    """Split <kind>_<deployment_id>_<timestamp>.json into its parts.

    Returns:
        (kind, deployment_id, timestamp) or None for names that do not match
    """
    stem = os.path.splitext(os.path.basename(filename))[0]
    parts = stem.split('_')
    if len(parts) < 3:
        return None
    try:
        timestamp = int(parts[-1])
    except ValueError:
        return None
    return parts[0], '_'.join(parts[1:-1]), timestamp


class BatchedJsonReader:
    """
    Reader that groups snapshot files by time window and provides them in
    chronological batches, one collection cycle per batch.
    """

    def __init__(self, directory: str, batch_window_seconds: int = 60,
                 deployment_id_filter: Optional[str] = None):
        """
        Args:
            directory: Directory containing snapshot files
            batch_window_seconds: Files whose timestamps fall in the same window form one batch
            deployment_id_filter: Only serve snapshots of this deployment
        """
        if batch_window_seconds <= 0:
            raise ValueError("batch_window_seconds must be positive")

        self.directory = directory
        self.batch_window_seconds = batch_window_seconds
        self.deployment_id_filter = deployment_id_filter
        self.batches: List[Tuple[int, List[str]]] = []
        self.current_batch_index = 0

        self._initialize_batches()

    def _window_of(self, filename: str) -> int:
        parsed = parse_snapshot_name(filename)
        return parsed[2] // self.batch_window_seconds if parsed else 0

    def _initialize_batches(self):
        files = [f for f in glob.glob(os.path.join(self.directory, '*_*_*.json'))
                 if parse_snapshot_name(f) is not None]
        logger.info(f"BatchedJsonReader found {len(files)} snapshot files in {self.directory}")

        if self.deployment_id_filter:
            original_count = len(files)
            files = [f for f in files if parse_snapshot_name(f)[1] == self.deployment_id_filter]
            logger.info(f"BatchedJsonReader deployment filter '{self.deployment_id_filter}': "
                        f"{original_count} -> {len(files)} files")

        if not files:
            logger.warning(f"No snapshot files found in {self.directory}")
            return

        files.sort(key=lambda f: (parse_snapshot_name(f)[2], f))
        self.batches = [(window, list(group)) for window, group in groupby(files, key=self._window_of)]
        logger.info(f"BatchedJsonReader created {len(self.batches)} batches")

    def deployment_ids(self) -> List[str]:
        """Distinct deployment ids across all batches"""
        return sorted({parse_snapshot_name(f)[1] for _, files in self.batches for f in files})

    def get_current_batch(self) -> List[str]:
        """Files of the current batch, empty when all batches are consumed"""
        if self.current_batch_index >= len(self.batches):
            return []
        return self.batches[self.current_batch_index][1]

    def get_current_batch_by_kind(self) -> Dict[str, str]:
        """Latest file per snapshot kind in the current batch"""
        latest: Dict[str, str] = {}
        for filename in self.get_current_batch():
            latest[parse_snapshot_name(filename)[0]] = filename
        return latest

    def get_current_batch_time(self) -> Optional[datetime]:
        files = self.get_current_batch()
        if not files:
            return None
        return JsonReader.extract_timestamp_from_filename(files[-1])

    def advance_to_next_batch(self) -> bool:
        """
        Advance to the next batch.

        Returns:
            True if there is a batch to serve after advancing
        """
        if self.current_batch_index >= len(self.batches):
            return False

        self.current_batch_index += 1
        if self.current_batch_index >= len(self.batches):
            return False

        window, files = self.batches[self.current_batch_index]
        readable_time = datetime.fromtimestamp(window * self.batch_window_seconds, tz=timezone.utc)
        logger.info(f"BatchedJsonReader advancing to batch {self.current_batch_index + 1}/{len(self.batches)}: "
                    f"{readable_time:%Y-%m-%d %H:%M:%S} with {len(files)} files")
        return True

    def has_more_batches(self) -> bool:
        return self.current_batch_index + 1 < len(self.batches)

    def get_total_batches(self) -> int:
        return len(self.batches)

    def reset(self):
        self.current_batch_index = 0
        logger.info("BatchedJsonReader reset to first batch")
