"""Base DataSource interface and shared data structures."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Any, Optional
from enum import Enum

from ..errors import ClusterInfoError
from ..schema.models import StorageInfo, DataUsageInfo, InfoMessage, ServerInfoOpts

logger = logging.getLogger(__name__)


class SnapshotType(Enum):
    """Admin documents a data source can provide."""
    STORAGE_INFO = "storage_info"
    DATA_USAGE_INFO = "data_usage_info"
    SERVER_INFO = "server_info"


@dataclass
class CollectionResult:
    """Result from a data collection operation.

    On failure the original exception is kept in error, unchanged.
    """
    snapshot_type: SnapshotType
    data: Optional[Any]
    success: bool
    error: Optional[BaseException] = None
    metadata: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if self.metadata is None:
            self.metadata = {}

    @property
    def error_message(self) -> Optional[str]:
        return str(self.error) if self.error is not None else None


@dataclass
class DeploymentInfo:
    """Deployment identification information."""
    deployment_id: str
    endpoint: str


class DataSource(ABC):
    """Abstract base class for all data sources.

    Live admin API and snapshot replay share this interface, so the reporter
    runs the same way against either.
    """

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self._deployment_info: Optional[DeploymentInfo] = None

    @property
    def deployment_info(self) -> Optional[DeploymentInfo]:
        """Get deployment information if available."""
        return self._deployment_info

    @property
    def source_name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def initialize(self) -> bool:
        """Initialize the data source. Returns True on success."""
        pass

    @abstractmethod
    def fetch_storage_info(self) -> StorageInfo:
        """Fetch the drive inventory and backend descriptor."""
        pass

    @abstractmethod
    def fetch_data_usage_info(self, capacity: bool = True) -> DataUsageInfo:
        """Fetch the usage summary, optionally with capacity figures."""
        pass

    @abstractmethod
    def fetch_server_info(self, opts: Optional[ServerInfoOpts] = None) -> InfoMessage:
        """Fetch the deployment info document."""
        pass

    @abstractmethod
    def cleanup(self) -> None:
        """Clean up any resources used by the data source."""
        pass

    def advance_batch(self) -> bool:
        """Advance to the next batch (snapshot replay only).

        Returns:
            True if batch advanced successfully, False if no more batches
        """
        return False

    def has_more_batches(self) -> bool:
        """Check if more batches are available (snapshot replay only)."""
        return False

    def current_timestamp(self) -> Optional[int]:
        """Unix time the served documents were taken at, None for live sources."""
        return None

    def collect(self, snapshot_type: SnapshotType, **kwargs) -> CollectionResult:
        """Fetch one document and wrap the outcome in a CollectionResult.

        Decode, API and I/O failures are logged and returned in the result;
        anything else propagates.
        """
        fetchers = {
            SnapshotType.STORAGE_INFO: self.fetch_storage_info,
            SnapshotType.DATA_USAGE_INFO: self.fetch_data_usage_info,
            SnapshotType.SERVER_INFO: self.fetch_server_info,
        }
        metadata = {'source': self.source_name}
        if self._deployment_info:
            metadata['deployment_id'] = self._deployment_info.deployment_id

        try:
            data = fetchers[snapshot_type](**kwargs)
        except (ClusterInfoError, OSError) as e:
            logger.error(f"Failed to collect {snapshot_type.value} from {self.source_name}: {e}")
            return CollectionResult(snapshot_type=snapshot_type, data=None, success=False,
                                    error=e, metadata=metadata)

        return CollectionResult(snapshot_type=snapshot_type, data=data, success=True, metadata=metadata)

