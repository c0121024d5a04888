#!/usr/bin/env python3
"""
Topology and capacity aggregation for erasure-coded clusters

Combines snapshots that were collected independently (one per node, or one per
poll) into cluster-wide figures. Every function here is pure: inputs are never
modified and results are freshly allocated, so callers may run them from
several threads on shared snapshots.

Folding order: BackendDisks.merge keeps only the keys of its left operand, so
fold_backend_disks() and merge_storage_infos() always reduce left to right in
the order the snapshots are given. The first snapshot therefore decides which
endpoints appear in the result.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from ..schema.models import (
    BackendDisks, BackendInfo, BackendType, DataUsageInfo, Disk, ErasureSetInfo,
    ErasureSetKey, InfoMessage, PoolTopology, StorageInfo, UNASSIGNED_INDEX
)

logger = logging.getLogger(__name__)


@dataclass
class ClusterSummary:
    """Cluster-wide figures derived from one StorageInfo snapshot"""
    backend_type: BackendType = BackendType.UNKNOWN
    total_disks: int = 0
    online_disks: int = 0
    offline_disks: int = 0
    healing_disks: int = 0
    unassigned_disks: int = 0
    raw_capacity: int = 0
    raw_usage: int = 0
    usable_capacity: int = 0
    pools: int = 0
    erasure_sets: int = 0
    standard_parity: Optional[int] = None
    oversubscribed_sets: List[ErasureSetKey] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            'backend_type': self.backend_type.name,
            'total_disks': self.total_disks,
            'online_disks': self.online_disks,
            'offline_disks': self.offline_disks,
            'healing_disks': self.healing_disks,
            'unassigned_disks': self.unassigned_disks,
            'raw_capacity': self.raw_capacity,
            'raw_usage': self.raw_usage,
            'usable_capacity': self.usable_capacity,
            'pools': self.pools,
            'erasure_sets': self.erasure_sets,
            'standard_parity': self.standard_parity,
            'oversubscribed_sets': [list(key) for key in self.oversubscribed_sets],
        }


def fold_backend_disks(observations: Iterable[Optional[BackendDisks]]) -> BackendDisks:
    """Left fold of BackendDisks.merge over observations, in the given order."""
    folded: Optional[BackendDisks] = None
    for observation in observations:
        if folded is None:
            folded = BackendDisks(observation or {})
            continue
        folded = folded.merge(observation)
    return folded if folded is not None else BackendDisks()


def _disk_identity(disk: Disk) -> Tuple[str, str]:
    return disk.endpoint, disk.drivePath


def merge_storage_infos(snapshots: Iterable[StorageInfo]) -> StorageInfo:
    """Combine per-node StorageInfo reports into one.

    Drives are keyed by (endpoint, path); a drive reported again by a later
    snapshot replaces the earlier report. The backend descriptor comes from the
    first snapshot. Its online/offline maps are folded across the snapshots
    that report only drives not seen before; a snapshot overlapping an earlier
    one contributes drives but not map counts, so no drive is counted twice.
    """
    snapshots = list(snapshots)
    if not snapshots:
        return StorageInfo()

    disks: Dict[Tuple[str, str], Disk] = {}
    counted: List[StorageInfo] = []
    for snapshot in snapshots:
        identities = [_disk_identity(disk) for disk in snapshot.disks]
        overlap = [identity for identity in identities if identity in disks]
        if overlap:
            logger.debug(f"Snapshot repeats {len(overlap)} drive(s); keeping its drive reports "
                         f"but not its online/offline counts")
        else:
            counted.append(snapshot)
        for identity, disk in zip(identities, snapshot.disks):
            disks[identity] = disk

    first = snapshots[0].backend
    backend = BackendInfo(
        type=first.type,
        gatewayOnline=first.gatewayOnline,
        onlineDisks=fold_backend_disks(s.backend.onlineDisks for s in counted),
        offlineDisks=fold_backend_disks(s.backend.offlineDisks for s in counted),
        standardSCData=list(first.standardSCData),
        standardSCParities=list(first.standardSCParities),
        rrSCData=list(first.rrSCData),
        rrSCParities=list(first.rrSCParities),
        totalSets=list(first.totalSets),
        drivesPerSet=list(first.drivesPerSet),
    )

    logger.debug(f"Merged {len(snapshots)} storage snapshots into {len(disks)} drives")
    return StorageInfo(disks=list(disks.values()), backend=backend)


def group_disks_by_pool(disks: Iterable[Disk]) -> Dict[int, List[Disk]]:
    """Drives grouped by pool index; drives without a placement go under UNASSIGNED_INDEX"""
    grouped: Dict[int, List[Disk]] = {}
    for disk in disks:
        pool = disk.poolIndex if disk.is_placed else UNASSIGNED_INDEX
        grouped.setdefault(pool, []).append(disk)
    return grouped


def _node_of(endpoint: str) -> str:
    # "http://node1:9000/data1" -> "node1:9000"
    host = endpoint.split('://', 1)[-1]
    return host.split('/', 1)[0]


def summarize_erasure_sets(storage_info: StorageInfo) -> PoolTopology:
    """Per-set rollup of the placed drives in a StorageInfo snapshot.

    Object counts are not part of StorageInfo and stay zero here.
    """
    accumulated: Dict[ErasureSetKey, ErasureSetInfo] = {}
    nodes: Dict[ErasureSetKey, set] = {}

    for disk in storage_info.disks:
        key = disk.set_key
        if key is None:
            continue

        info = accumulated.get(key)
        if info is None:
            info = ErasureSetInfo(id=key.set)
            accumulated[key] = info
            nodes[key] = set()

        info.rawCapacity += disk.totalSpace
        info.rawUsage += disk.usedSpace
        if disk.healing:
            info.healDisks += 1
        if disk.is_online:
            info.onlineDisks += 1
        else:
            info.offlineDisks += 1
        if disk.endpoint:
            nodes[key].add(_node_of(disk.endpoint))

    topology = PoolTopology()
    for key, info in accumulated.items():
        info.nodes = sorted(nodes[key])
        topology.put(key, info)
    return topology


def usable_capacity(storage_info: StorageInfo) -> int:
    """Capacity left for data once standard storage class parity is taken out.

    Each drive contributes totalspace * (drives_per_set - parity) / drives_per_set
    of its pool. Pools without layout information are skipped.
    """
    backend = storage_info.backend
    backend.pool_count()

    usable = 0
    skipped_pools = set()
    for pool, disks in group_disks_by_pool(storage_info.disks).items():
        if pool == UNASSIGNED_INDEX:
            continue

        drives = backend.drives_per_set_for_pool(pool)
        parity = backend.standard_parity_for_pool(pool)
        if not drives or parity is None:
            skipped_pools.add(pool)
            continue

        data_drives = drives - parity
        for disk in disks:
            usable += disk.totalSpace * data_drives // drives

    if skipped_pools:
        logger.warning(f"No erasure layout for pools {sorted(skipped_pools)}, excluded from usable capacity")
    return usable


def summarize_cluster(storage_info: StorageInfo, info: Optional[InfoMessage] = None) -> ClusterSummary:
    """Build a ClusterSummary from a StorageInfo snapshot.

    When an InfoMessage is supplied its parity setting is used; otherwise the
    parity of pool 0 from the storage snapshot. Sets reporting more drives than
    their pool's drives-per-set are listed in oversubscribed_sets and logged,
    not rejected.
    """
    backend = storage_info.backend
    summary = ClusterSummary(backend_type=backend.type)

    for disk in storage_info.disks:
        summary.total_disks += 1
        summary.raw_capacity += disk.totalSpace
        summary.raw_usage += disk.usedSpace
        if disk.is_online:
            summary.online_disks += 1
        else:
            summary.offline_disks += 1
        if disk.healing:
            summary.healing_disks += 1
        if not disk.is_placed:
            summary.unassigned_disks += 1

    topology = summarize_erasure_sets(storage_info)
    summary.pools = max(backend.pool_count(), len(topology.pools()))
    summary.erasure_sets = sum(backend.totalSets) or len(topology)

    if backend.type == BackendType.ERASURE:
        summary.usable_capacity = usable_capacity(storage_info)

    if info is not None:
        summary.standard_parity = info.parity
    elif backend.type == BackendType.ERASURE:
        summary.standard_parity = backend.standard_parity_for_pool(0)

    for key, set_info in topology.items():
        drives = backend.drives_per_set_for_pool(key.pool)
        if drives and set_info.onlineDisks + set_info.offlineDisks > drives:
            logger.warning(
                f"Erasure set pool={key.pool} set={key.set} reports "
                f"{set_info.onlineDisks + set_info.offlineDisks} drives, configured for {drives}"
            )
            summary.oversubscribed_sets.append(key)

    return summary


def merge_histograms(usage: DataUsageInfo) -> Tuple[Dict[str, int], Dict[str, int]]:
    """Cluster-wide object size and object version histograms.

    Returns:
        (sizes, versions), each bucket label summed across every bucket
    """
    sizes: Dict[str, int] = {}
    versions: Dict[str, int] = {}
    for bucket_usage in usage.bucketsUsage.values():
        for label, count in bucket_usage.objectSizesHistogram.items():
            sizes[label] = sizes.get(label, 0) + count
        for label, count in bucket_usage.objectVersionsHistogram.items():
            versions[label] = versions.get(label, 0) + count
    return sizes, versions
