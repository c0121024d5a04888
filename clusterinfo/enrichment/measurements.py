"""
Flattening of collected admin documents into writer measurements

Every measurement is a list of records shaped
    {'tags': {...}, 'fields': {...}, 'time': <unix seconds>}
Tag keys are fixed per measurement so Prometheus label sets stay stable.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .topology import merge_histograms, summarize_cluster, summarize_erasure_sets
from ..schema.models import DataUsageInfo, InfoMessage, PoolTopology, StorageInfo

logger = logging.getLogger(__name__)

MEASUREMENT_CLUSTER = 'cluster_capacity'
MEASUREMENT_DRIVE = 'cluster_drive'
MEASUREMENT_ERASURE_SET = 'cluster_erasure_set'
MEASUREMENT_USAGE = 'cluster_usage'
MEASUREMENT_BUCKET = 'cluster_bucket'
MEASUREMENT_TIER = 'cluster_tier'
MEASUREMENT_HISTOGRAM = 'cluster_object_histogram'
MEASUREMENT_SERVER = 'cluster_server'
MEASUREMENT_INFO = 'cluster_info'

Record = Dict[str, Any]


@dataclass
class ClusterReport:
    """Documents gathered for one deployment in one collection cycle"""
    deployment_id: str = 'unknown'
    storage_info: Optional[StorageInfo] = None
    data_usage: Optional[DataUsageInfo] = None
    server_info: Optional[InfoMessage] = None
    collected_at: int = field(default_factory=lambda: int(time.time()))

    def is_empty(self) -> bool:
        return self.storage_info is None and self.data_usage is None and self.server_info is None


def _record(report: ClusterReport, tags: Dict[str, Any], fields: Dict[str, Any]) -> Record:
    all_tags = {'deployment_id': report.deployment_id}
    all_tags.update({key: '' if value is None else str(value) for key, value in tags.items()})
    return {
        'tags': all_tags,
        'fields': {key: value for key, value in fields.items() if value is not None},
        'time': report.collected_at,
    }


def _cluster_records(report: ClusterReport) -> List[Record]:
    summary = summarize_cluster(report.storage_info, report.server_info)
    fields = summary.to_dict()
    backend_type = fields.pop('backend_type')
    fields['oversubscribed_sets'] = len(summary.oversubscribed_sets)
    return [_record(report, {'backend_type': backend_type}, fields)]


def _drive_records(report: ClusterReport) -> List[Record]:
    records = []
    for disk in report.storage_info.disks:
        tags = {
            'endpoint': disk.endpoint,
            'path': disk.drivePath,
            'pool': disk.poolIndex,
            'set': disk.setIndex,
            'state': disk.state or 'unknown',
        }
        fields = {
            'total_space': disk.totalSpace,
            'used_space': disk.usedSpace,
            'available_space': disk.availableSpace,
            'used_inodes': disk.usedInodes,
            'free_inodes': disk.freeInodes,
            'healing': int(disk.healing),
            'online': int(disk.is_online),
            'utilization': disk.utilization,
            'read_latency': disk.readLatency,
            'write_latency': disk.writeLatency,
        }
        records.append(_record(report, tags, fields))
    return records


def _erasure_set_records(report: ClusterReport, topology: PoolTopology) -> List[Record]:
    records = []
    for key, info in topology.items():
        fields = {
            'raw_capacity': info.rawCapacity,
            'raw_usage': info.rawUsage,
            'usage': info.usage,
            'objects_count': info.objectsCount,
            'versions_count': info.versionsCount,
            'delete_markers_count': info.deleteMarkersCount,
            'heal_disks': info.healDisks,
            'online_disks': info.onlineDisks,
            'offline_disks': info.offlineDisks,
        }
        records.append(_record(report, {'pool': key.pool, 'set': key.set}, fields))
    return records


def _usage_records(report: ClusterReport) -> List[Record]:
    usage = report.data_usage
    tiers = usage.tier_totals()
    fields = {
        'objects_count': usage.objectsTotalCount,
        'objects_total_size': usage.objectsTotalSize,
        'buckets_count': usage.bucketsCount,
        'capacity': usage.totalCapacity,
        'free_capacity': usage.totalFreeCapacity,
        'used_capacity': usage.totalUsedCapacity,
        'replication_pending_size': usage.replicationPendingSize,
        'replication_failed_size': usage.replicationFailedSize,
        'replicated_size': usage.replicatedSize,
        'replica_size': usage.replicaSize,
        'replication_pending_count': usage.replicationPendingCount,
        'replication_failed_count': usage.replicationFailedCount,
        'tiered_size': tiers.totalSize,
        'tiered_objects': tiers.numObjects,
        'last_update': int(usage.lastUpdate.timestamp()) if usage.lastUpdate else None,
    }
    return [_record(report, {}, fields)]


def _bucket_records(report: ClusterReport) -> List[Record]:
    records = []
    for bucket, info in sorted(report.data_usage.bucketsUsage.items()):
        fields = {
            'size': info.size,
            'objects_count': info.objectsCount,
            'versions_count': info.versionsCount,
            'delete_markers_count': info.deleteMarkersCount,
            'replication_pending_size': info.replicationPendingSize,
            'replication_failed_size': info.replicationFailedSize,
        }
        records.append(_record(report, {'bucket': bucket}, fields))
    return records


def _tier_records(report: ClusterReport) -> List[Record]:
    return [
        _record(report, {'tier': tier},
                {'total_size': stats.totalSize, 'num_versions': stats.numVersions, 'num_objects': stats.numObjects})
        for tier, stats in sorted(report.data_usage.tierStats.items())
    ]


def _histogram_records(report: ClusterReport) -> List[Record]:
    sizes, versions = merge_histograms(report.data_usage)
    records = [_record(report, {'kind': 'size', 'range': label}, {'objects': count})
               for label, count in sorted(sizes.items())]
    records.extend(_record(report, {'kind': 'versions', 'range': label}, {'objects': count})
                   for label, count in sorted(versions.items()))
    return records


def _server_records(report: ClusterReport) -> List[Record]:
    records = []
    for server in report.server_info.servers:
        tags = {
            'endpoint': server.endpoint,
            'state': server.state or 'unknown',
            'version': server.version,
            'edition': server.edition,
        }
        fields = {
            'uptime': server.uptime,
            'drives': len(server.disks),
            'online_drives': sum(1 for disk in server.disks if disk.is_online),
            'mem_alloc': server.memStats.alloc,
            'num_cpu': server.numCPU,
            'is_leader': int(server.isLeader),
        }
        records.append(_record(report, tags, fields))
    return records


def _info_records(report: ClusterReport) -> List[Record]:
    info = report.server_info
    # counts whose collection failed server side are left out, not reported as zero
    fields = {
        'buckets': info.buckets.value,
        'objects': info.objects.value,
        'versions': info.versions.value,
        'delete_markers': info.deleteMarkers.value,
        'usage': info.usage.value,
        'standard_parity': info.parity,
        'servers': len(info.servers),
        'notification_targets': len(info.services.notification_targets()),
    }
    for name, record in (('buckets', info.buckets), ('objects', info.objects), ('versions', info.versions),
                         ('delete_markers', info.deleteMarkers), ('usage', info.usage)):
        if not record.ok:
            logger.warning(f"Server reported an error counting {name}: {record.error}")
    return [_record(report, {'mode': info.mode, 'region': info.region}, fields)]


def build_measurements(report: ClusterReport) -> Dict[str, List[Record]]:
    """Flatten a ClusterReport into measurement name -> records.

    Measurements whose source document is missing are left out.
    """
    measurements: Dict[str, List[Record]] = {}

    if report.storage_info is not None:
        measurements[MEASUREMENT_CLUSTER] = _cluster_records(report)
        measurements[MEASUREMENT_DRIVE] = _drive_records(report)

    # the server's own rollup carries object counts; fall back to one built from the drives
    if report.server_info is not None and len(report.server_info.pools):
        topology = report.server_info.pools
    elif report.storage_info is not None:
        topology = summarize_erasure_sets(report.storage_info)
    else:
        topology = PoolTopology()
    if len(topology):
        measurements[MEASUREMENT_ERASURE_SET] = _erasure_set_records(report, topology)

    if report.data_usage is not None:
        measurements[MEASUREMENT_USAGE] = _usage_records(report)
        measurements[MEASUREMENT_BUCKET] = _bucket_records(report)
        measurements[MEASUREMENT_TIER] = _tier_records(report)
        measurements[MEASUREMENT_HISTOGRAM] = _histogram_records(report)

    if report.server_info is not None:
        measurements[MEASUREMENT_SERVER] = _server_records(report)
        measurements[MEASUREMENT_INFO] = _info_records(report)

    logger.debug(f"Built {sum(len(r) for r in measurements.values())} records "
                 f"across {len(measurements)} measurements for {report.deployment_id}")
    return measurements
