"""JSON Replay DataSource implementation.

Replays admin documents from previously saved snapshot files.
"""

import json
import logging
import os
import time
from pathlib import Path
from typing import Dict, Any, Optional, Type, TypeVar

from .base import DataSource, DeploymentInfo
from ..config.api_endpoints import get_snapshot_kind
from ..read.batched_json_reader import BatchedJsonReader
from ..read.json_reader import JsonReader
from ..schema.models import StorageInfo, DataUsageInfo, InfoMessage, ServerInfoOpts

logger = logging.getLogger(__name__)

T = TypeVar('T')


def save_snapshot(directory: str, endpoint_key: str, deployment_id: str, data: Any,
                  timestamp: Optional[int] = None) -> Path:
    """Write a raw admin document as <kind>_<deployment_id>_<timestamp>.json.

    The file holds the {"deployment_id", "data"} wrapper read back by JsonReader.
    """
    timestamp = int(time.time()) if timestamp is None else timestamp
    os.makedirs(directory, exist_ok=True)

    filename = f"{get_snapshot_kind(endpoint_key)}_{deployment_id or 'unknown'}_{timestamp}.json"
    filepath = Path(directory) / filename
    with open(filepath, 'w', encoding='utf-8') as f:
        json.dump({'deployment_id': deployment_id, 'data': data}, f, indent=2, default=str)

    logger.debug(f"Wrote {endpoint_key} snapshot to {filename}")
    return filepath


class JSONReplayDataSource(DataSource):
    """DataSource implementation for snapshot file replay.

    This implementation handles:
    - Batched snapshot reading with deployment id filtering
    - Deployment identification from the snapshot names
    - Temporal batch progression
    """

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.logger = logging.getLogger(__name__)

        self.json_directory = config.get('json_directory') or config.get('from_json')
        self.deployment_id_filter = config.get('deployment_id')
        self.batch_window_seconds = config.get('batch_window_seconds', 60)

        self.batched_reader: Optional[BatchedJsonReader] = None

    @property
    def source_name(self) -> str:
        return f"json_replay:{self.json_directory}"

    def initialize(self) -> bool:
        """Initialize snapshot replay with the batched reader.

        Returns:
            True if initialization successful, False otherwise
        """
        if not self.json_directory:
            self.logger.error("JSON directory not configured")
            return False

        if not os.path.isdir(self.json_directory):
            self.logger.error(f"JSON directory does not exist: {self.json_directory}")
            return False

        self.logger.info(f"Initializing JSON replay from directory: {self.json_directory}")
        self.batched_reader = BatchedJsonReader(
            directory=self.json_directory,
            batch_window_seconds=self.batch_window_seconds,
            deployment_id_filter=self.deployment_id_filter
        )

        deployment_ids = self.batched_reader.deployment_ids()
        if not deployment_ids:
            self.logger.error(f"No snapshots to replay in {self.json_directory}")
            return False

        if len(deployment_ids) > 1:
            self.logger.error(f"Found snapshots of {len(deployment_ids)} deployments: {deployment_ids[:5]}")
            self.logger.error("Set the deployment id to choose which one to replay")
            return False

        self._deployment_info = DeploymentInfo(deployment_id=deployment_ids[0], endpoint=self.json_directory)
        self.logger.info(f"JSON replay initialized for deployment {deployment_ids[0]} "
                         f"with {self.batched_reader.get_total_batches()} batches")
        return True

    def _read_current(self, endpoint_key: str, model_class: Type[T]) -> T:
        if self.batched_reader is None:
            raise FileNotFoundError("JSON replay is not initialized")

        kind = get_snapshot_kind(endpoint_key)
        filename = self.batched_reader.get_current_batch_by_kind().get(kind)
        if filename is None:
            raise FileNotFoundError(f"No {kind} snapshot in batch {self.batched_reader.current_batch_index + 1}")

        self.logger.debug(f"Replaying {os.path.basename(filename)}")
        return JsonReader.read_model_from_file(filename, model_class)

    def fetch_storage_info(self) -> StorageInfo:
        return self._read_current('storage_info', StorageInfo)

    def fetch_data_usage_info(self, capacity: bool = True) -> DataUsageInfo:
        # capacity figures are whatever the snapshot was taken with
        return self._read_current('data_usage_info', DataUsageInfo)

    def fetch_server_info(self, opts: Optional[ServerInfoOpts] = None) -> InfoMessage:
        return self._read_current('server_info', InfoMessage)

    def advance_batch(self) -> bool:
        if self.batched_reader is None:
            return False
        return self.batched_reader.advance_to_next_batch()

    def has_more_batches(self) -> bool:
        return self.batched_reader is not None and self.batched_reader.has_more_batches()

    def current_timestamp(self) -> Optional[int]:
        if self.batched_reader is None:
            return None
        batch_time = self.batched_reader.get_current_batch_time()
        return int(batch_time.timestamp()) if batch_time else None

    def cleanup(self) -> None:
        self.batched_reader = None
        self.logger.debug("JSON replay cleanup completed")
