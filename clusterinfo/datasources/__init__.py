"""DataSource implementations for different collection modes."""

from .base import DataSource, CollectionResult, SnapshotType, DeploymentInfo
from .live_api import AdminAPIDataSource
from .json_replay import JSONReplayDataSource, save_snapshot
from .auth import AdminSigV4Auth

__all__ = ['DataSource', 'CollectionResult', 'SnapshotType', 'DeploymentInfo',
           'AdminAPIDataSource', 'JSONReplayDataSource', 'save_snapshot', 'AdminSigV4Auth']
