"""Admin API document models and their wire codec."""

from .base_model import BaseModel
from .models import (
    BackendDisks, BackendInfo, BackendType, StorageInfo, Disk, ErasureSetInfo, ErasureSetKey,
    PoolTopology, InfoMessage, DataUsageInfo, BucketUsageInfo, TierStats, Services, ARN,
    NotificationTarget, ServerInfoOpts
)

__all__ = [
    'BaseModel', 'BackendDisks', 'BackendInfo', 'BackendType', 'StorageInfo', 'Disk',
    'ErasureSetInfo', 'ErasureSetKey', 'PoolTopology', 'InfoMessage', 'DataUsageInfo',
    'BucketUsageInfo', 'TierStats', 'Services', 'ARN', 'NotificationTarget', 'ServerInfoOpts'
]
