from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum
from typing import Dict, List, Optional, Any, Iterator, NamedTuple

from .base_model import (
    BaseModel, wire, as_int, list_of, map_of, int_list, str_list, int_map, str_map,
    parse_time, format_time, time_list
)
from ..errors import TopologyError


# Placement index of a drive that has not joined an erasure set yet
UNASSIGNED_INDEX = -1


class BackendType(IntEnum):
    """Storage engine kind. The numeric value is what StorageInfo carries on the wire."""
    UNKNOWN = 0
    FS = 1          # Filesystem backend
    ERASURE = 2     # Multi disk erasure (single, distributed) backend
    GATEWAY = 3     # Gateway to other storage


class ItemState(Enum):
    """State of a server as reported in ServerProperties.state"""
    OFFLINE = "offline"
    INITIALIZING = "initializing"
    ONLINE = "online"


# Drive states reported in Disk.state
DRIVE_STATE_OK = "ok"
DRIVE_STATE_OFFLINE = "offline"
DRIVE_STATE_CORRUPT = "corrupt"
DRIVE_STATE_MISSING = "missing"
DRIVE_STATE_PERMISSION = "permission-denied"
DRIVE_STATE_FAULTY = "faulty"
DRIVE_STATE_ROOT_MOUNT = "root-mount"
DRIVE_STATE_UNKNOWN = "unknown"
DRIVE_STATE_UNFORMATTED = "unformatted"

# Backend tags used by InfoMessage.backend.type
FS_TYPE = "FS"
ERASURE_TYPE = "Erasure"


class BackendDisks(dict):
    """
    Endpoint to disk count map, e.g. {"http://node1:9000": 4}.

    Keys are unique per snapshot and carry no ordering.
    """

    def sum(self) -> int:
        """Total number of disks across all endpoints"""
        total = 0
        for count in self.values():
            total += count
        return total

    def merge(self, other: Optional[Dict[str, int]] = None) -> 'BackendDisks':
        """Reduce two endpoint-disk maps into a new one.

        Counts of endpoints present in both maps are added. Endpoints that only
        appear in other are not carried into the result, so the reduction is
        one-sided and folding order matters. Neither operand is modified.
        """
        if not other:
            other = {}
        merged = BackendDisks()
        for endpoint, count in self.items():
            if endpoint in other:
                merged[endpoint] = other[endpoint] + count
                continue
            merged[endpoint] = count
        return merged

    @classmethod
    def from_api_response(cls, data: Any) -> 'BackendDisks':
        return cls(int_map(data))


@dataclass
class BackendInfo(BaseModel):
    """Underlying backend of a StorageInfo snapshot.

    Wire keys are the plain field names; this document predates JSON tags.
    Everything past gatewayOnline is only meaningful for erasure backends and
    every per-pool list is indexed by pool number.
    """
    type: BackendType = wire('Type', default=BackendType.UNKNOWN, decode=lambda v: BackendType(as_int(v)))
    gatewayOnline: bool = wire('GatewayOnline', default=False)
    onlineDisks: BackendDisks = wire('OnlineDisks', default_factory=BackendDisks, decode=BackendDisks.from_api_response)
    offlineDisks: BackendDisks = wire('OfflineDisks', default_factory=BackendDisks, decode=BackendDisks.from_api_response)
    standardSCData: List[int] = wire('StandardSCData', default_factory=list, decode=int_list)
    standardSCParities: List[int] = wire('StandardSCParities', default_factory=list, decode=int_list)
    rrSCData: List[int] = wire('RRSCData', default_factory=list, decode=int_list)
    rrSCParities: List[int] = wire('RRSCParities', default_factory=list, decode=int_list)
    totalSets: List[int] = wire('TotalSets', default_factory=list, decode=int_list)
    drivesPerSet: List[int] = wire('DrivesPerSet', default_factory=list, decode=int_list)

    def pool_count(self) -> int:
        """Number of pools described by the per-pool lists.

        Raises:
            TopologyError: the populated per-pool lists disagree in length
        """
        lengths = {
            name: len(values) for name, values in (
                ('StandardSCData', self.standardSCData),
                ('StandardSCParities', self.standardSCParities),
                ('RRSCData', self.rrSCData),
                ('RRSCParities', self.rrSCParities),
                ('TotalSets', self.totalSets),
                ('DrivesPerSet', self.drivesPerSet),
            ) if values
        }
        if len(set(lengths.values())) > 1:
            raise TopologyError(f"per-pool arrays disagree in length: {lengths}")
        return next(iter(lengths.values()), 0)

    def standard_parity_for_pool(self, pool: int) -> Optional[int]:
        if 0 <= pool < len(self.standardSCParities):
            return self.standardSCParities[pool]
        return None

    def drives_per_set_for_pool(self, pool: int) -> Optional[int]:
        if 0 <= pool < len(self.drivesPerSet):
            return self.drivesPerSet[pool]
        return None


@dataclass
class TimedAction(BaseModel):
    """Count and accumulated duration (nanoseconds) of one storage API"""
    count: int = wire('count', default=0)
    accTime: int = wire('acc_time_ns', default=0)
    minTime: int = wire('min_ns', default=0, omitempty=True)
    maxTime: int = wire('max_ns', default=0, omitempty=True)
    bytes: int = wire('bytes', default=0, omitempty=True)

    def avg_ns(self) -> float:
        if self.count == 0:
            return 0.0
        return self.accTime / self.count


@dataclass
class DiskMetrics(BaseModel):
    """Per-drive storage API call counts and last-minute latencies"""
    lastMinute: Dict[str, TimedAction] = wire('lastMinute', default_factory=dict, omitempty=True,
                                              decode=map_of(TimedAction.from_api_response))
    apiCalls: Dict[str, int] = wire('apiCalls', default_factory=dict, omitempty=True, decode=int_map)
    totalTokens: int = wire('totalTokens', default=0, omitempty=True)  # unused by current servers
    totalWaiting: int = wire('totalWaiting', default=0, omitempty=True)
    totalErrorsAvailability: int = wire('totalErrorsAvailability', default=0, omitempty=True)
    totalErrorsTimeout: int = wire('totalErrorsTimeout', default=0, omitempty=True)
    totalWrites: int = wire('totalWrites', default=0, omitempty=True)
    totalDeletes: int = wire('totalDeletes', default=0, omitempty=True)


@dataclass
class HealingDisk(BaseModel):
    """Progress of a drive that is being healed"""
    id: str = wire('id', default='')
    healID: str = wire('heal_id', default='')
    poolIndex: int = wire('pool_index', default=UNASSIGNED_INDEX)
    setIndex: int = wire('set_index', default=UNASSIGNED_INDEX)
    diskIndex: int = wire('disk_index', default=UNASSIGNED_INDEX)
    endpoint: str = wire('endpoint', default='')
    path: str = wire('path', default='')
    started: Optional[datetime] = wire('started', decode=parse_time, encode=format_time)
    lastUpdate: Optional[datetime] = wire('last_update', decode=parse_time, encode=format_time)
    retryAttempts: int = wire('retry_attempts', default=0, omitempty=True)
    objectsTotalCount: int = wire('objects_total_count', default=0)
    objectsTotalSize: int = wire('objects_total_size', default=0)
    itemsHealed: int = wire('items_healed', default=0)
    itemsFailed: int = wire('items_failed', default=0)
    itemsSkipped: int = wire('items_skipped', default=0)
    bytesDone: int = wire('bytes_done', default=0)
    bytesFailed: int = wire('bytes_failed', default=0)
    bytesSkipped: int = wire('bytes_skipped', default=0)
    currentBucket: str = wire('current_bucket', default='')
    currentObject: str = wire('current_object', default='')
    queuedBuckets: List[str] = wire('queued_buckets', default_factory=list, decode=str_list)
    healedBuckets: List[str] = wire('healed_buckets', default_factory=list, decode=str_list)
    finished: bool = wire('finished', default=False)


@dataclass
class CacheStats(BaseModel):
    """Drive cache statistics"""
    capacity: int = wire('capacity', default=0)
    used: int = wire('used', default=0)
    hits: int = wire('hits', default=0)
    misses: int = wire('misses', default=0)
    delHits: int = wire('delHits', default=0)
    delMisses: int = wire('delMisses', default=0)
    collisions: int = wire('collisions', default=0)


class ErasureSetKey(NamedTuple):
    """Composite (pool, set) address of an erasure set"""
    pool: int
    set: int


@dataclass
class Disk(BaseModel):
    """
    One drive as reported by the server.

    {"endpoint": "http://node1:9000/data1", "path": "/data1", "state": "ok",
     "uuid": "6a1f...", "totalspace": 4000787030016, "usedspace": 1073741824,
     "availspace": 3999713288192, "pool_index": 0, "set_index": 1, "disk_index": 3}
    """
    endpoint: str = wire('endpoint', default='', omitempty=True)
    rootDisk: bool = wire('rootDisk', default=False, omitempty=True)
    drivePath: str = wire('path', default='', omitempty=True)
    healing: bool = wire('healing', default=False, omitempty=True)
    scanning: bool = wire('scanning', default=False, omitempty=True)
    state: str = wire('state', default='', omitempty=True)
    uuid: str = wire('uuid', default='', omitempty=True)
    major: int = wire('major', default=0)
    minor: int = wire('minor', default=0)
    model: str = wire('model', default='', omitempty=True)
    totalSpace: int = wire('totalspace', default=0, omitempty=True)
    usedSpace: int = wire('usedspace', default=0, omitempty=True)
    availableSpace: int = wire('availspace', default=0, omitempty=True)
    readThroughput: float = wire('readthroughput', default=0.0, omitempty=True)
    writeThroughput: float = wire('writethroughput', default=0.0, omitempty=True)
    readLatency: float = wire('readlatency', default=0.0, omitempty=True)
    writeLatency: float = wire('writelatency', default=0.0, omitempty=True)
    utilization: float = wire('utilization', default=0.0, omitempty=True)
    metrics: Optional[DiskMetrics] = wire('metrics', omitempty=True, decode=DiskMetrics.from_api_response)
    healInfo: Optional[HealingDisk] = wire('heal_info', omitempty=True, decode=HealingDisk.from_api_response)
    usedInodes: int = wire('used_inodes', default=0)
    freeInodes: int = wire('free_inodes', default=0, omitempty=True)
    local: bool = wire('local', default=False, omitempty=True)
    cache: Optional[CacheStats] = wire('cacheStats', omitempty=True, decode=CacheStats.from_api_response)
    poolIndex: int = wire('pool_index', default=UNASSIGNED_INDEX)
    setIndex: int = wire('set_index', default=UNASSIGNED_INDEX)
    diskIndex: int = wire('disk_index', default=UNASSIGNED_INDEX)

    @property
    def is_placed(self) -> bool:
        """True once the drive has a pool, set and disk index"""
        return self.poolIndex >= 0 and self.setIndex >= 0 and self.diskIndex >= 0

    @property
    def set_key(self) -> Optional[ErasureSetKey]:
        if not self.is_placed:
            return None
        return ErasureSetKey(self.poolIndex, self.setIndex)

    @property
    def is_online(self) -> bool:
        return self.state == DRIVE_STATE_OK


@dataclass
class StorageInfo(BaseModel):
    """Capacity snapshot of the cluster: every drive plus the backend descriptor"""
    disks: List[Disk] = wire('Disks', default_factory=list, decode=list_of(Disk.from_api_response))
    backend: BackendInfo = wire('Backend', default_factory=BackendInfo, decode=BackendInfo.from_api_response)

    def disks_in_pool(self, pool: int) -> List[Disk]:
        """Drives whose pool_index is pool, in report order"""
        return [disk for disk in self.disks if disk.poolIndex == pool]


@dataclass
class BucketUsageInfo(BaseModel):
    """Usage of a single bucket"""
    size: int = wire('size', default=0)
    replicationPendingSize: int = wire('objectsPendingReplicationTotalSize', default=0)
    replicationFailedSize: int = wire('objectsFailedReplicationTotalSize', default=0)
    replicatedSize: int = wire('objectsReplicatedTotalSize', default=0)
    replicaSize: int = wire('objectReplicaTotalSize', default=0)
    replicationPendingCount: int = wire('objectsPendingReplicationCount', default=0)
    replicationFailedCount: int = wire('objectsFailedReplicationCount', default=0)
    versionsCount: int = wire('versionsCount', default=0)
    objectsCount: int = wire('objectsCount', default=0)
    deleteMarkersCount: int = wire('deleteMarkersCount', default=0)
    objectSizesHistogram: Dict[str, int] = wire('objectsSizesHistogram', default_factory=dict, decode=int_map)
    objectVersionsHistogram: Dict[str, int] = wire('objectsVersionsHistogram', default_factory=dict, decode=int_map)


@dataclass
class TierStats(BaseModel):
    """Bytes and object/version counts transitioned to one tier"""
    totalSize: int = wire('totalSize', default=0)
    numVersions: int = wire('numVersions', default=0)
    numObjects: int = wire('numObjects', default=0)

    def add(self, other: 'TierStats') -> 'TierStats':
        return TierStats(
            totalSize=self.totalSize + other.totalSize,
            numVersions=self.numVersions + other.numVersions,
            numObjects=self.numObjects + other.numObjects,
        )


@dataclass
class DataUsageInfo(BaseModel):
    """
    Cluster-wide usage rollup from the last scanner cycle.

    lastUpdate is when the rollup was last refreshed, not when a full scan
    completed, and need not line up with a concurrently fetched InfoMessage.
    """
    lastUpdate: Optional[datetime] = wire('lastUpdate', decode=parse_time, encode=format_time)
    objectsTotalCount: int = wire('objectsCount', default=0)
    objectsTotalSize: int = wire('objectsTotalSize', default=0)
    replicationPendingSize: int = wire('objectsPendingReplicationTotalSize', default=0)
    replicationFailedSize: int = wire('objectsFailedReplicationTotalSize', default=0)
    replicatedSize: int = wire('objectsReplicatedTotalSize', default=0)
    replicaSize: int = wire('objectsReplicaTotalSize', default=0)
    replicationPendingCount: int = wire('objectsPendingReplicationCount', default=0)
    replicationFailedCount: int = wire('objectsFailedReplicationCount', default=0)
    bucketsCount: int = wire('bucketsCount', default=0)
    bucketsUsage: Dict[str, BucketUsageInfo] = wire('bucketsUsageInfo', default_factory=dict,
                                                    decode=map_of(BucketUsageInfo.from_api_response))
    tierStats: Dict[str, TierStats] = wire('tierStats', default_factory=dict,
                                           decode=map_of(TierStats.from_api_response))
    totalCapacity: int = wire('capacity', default=0)
    totalFreeCapacity: int = wire('freeCapacity', default=0)
    totalUsedCapacity: int = wire('usedCapacity', default=0)

    def bucket_usage(self, bucket: str) -> BucketUsageInfo:
        """Usage of bucket; a bucket with no recorded usage reads as all zero"""
        return self.bucketsUsage.get(bucket) or BucketUsageInfo()

    def tier_totals(self) -> TierStats:
        total = TierStats()
        for stats in self.tierStats.values():
            total = total.add(stats)
        return total


@dataclass
class ErasureSetInfo(BaseModel):
    """Rollup of one erasure set"""
    id: int = wire('id', default=0)
    rawUsage: int = wire('rawUsage', default=0)
    rawCapacity: int = wire('rawCapacity', default=0)
    usage: int = wire('usage', default=0)
    objectsCount: int = wire('objectsCount', default=0)
    versionsCount: int = wire('versionsCount', default=0)
    deleteMarkersCount: int = wire('deleteMarkersCount', default=0)
    healDisks: int = wire('healDisks', default=0)
    onlineDisks: int = wire('onlineDisks', default=0, omitempty=True)
    offlineDisks: int = wire('offlineDisks', default=0, omitempty=True)
    nodes: List[str] = wire('nodes', default_factory=list, omitempty=True, decode=str_list)


class PoolTopology(Mapping):
    """
    Erasure sets keyed by ErasureSetKey(pool, set).

    Wire form is the nested {"<pool>": {"<set>": {...}}} object. An entry is
    only accepted when its id matches the set part of its key.
    """

    def __init__(self, sets: Optional[Dict[ErasureSetKey, ErasureSetInfo]] = None):
        self._sets: Dict[ErasureSetKey, ErasureSetInfo] = {}
        for key, info in (sets or {}).items():
            self.put(ErasureSetKey(*key), info)

    def put(self, key: ErasureSetKey, info: ErasureSetInfo) -> None:
        if key.set != info.id:
            raise TopologyError(f"erasure set id {info.id} does not match key pool={key.pool} set={key.set}")
        self._sets[key] = info

    def add(self, pool: int, info: ErasureSetInfo) -> None:
        """Insert info under (pool, info.id)"""
        self._sets[ErasureSetKey(pool, info.id)] = info

    def __getitem__(self, key) -> ErasureSetInfo:
        return self._sets[ErasureSetKey(*key)]

    def __iter__(self) -> Iterator[ErasureSetKey]:
        return iter(sorted(self._sets))

    def __len__(self) -> int:
        return len(self._sets)

    def __repr__(self) -> str:
        return f"PoolTopology({dict(self.items())!r})"

    def pools(self) -> List[int]:
        return sorted({key.pool for key in self._sets})

    def sets_in_pool(self, pool: int) -> List[ErasureSetInfo]:
        return [self._sets[key] for key in sorted(self._sets) if key.pool == pool]

    @classmethod
    def from_api_response(cls, data: Any) -> 'PoolTopology':
        if not isinstance(data, dict):
            raise TypeError(f"expected object of pools, got {type(data).__name__}")
        topology = cls()
        for pool_key, sets in data.items():
            if not isinstance(sets, dict):
                raise TypeError(f"pool {pool_key}: expected object of erasure sets, got {type(sets).__name__}")
            for set_key, raw_info in sets.items():
                key = ErasureSetKey(int(pool_key), int(set_key))
                topology.put(key, ErasureSetInfo.from_api_response(raw_info))
        return topology

    def to_api_response(self) -> Dict[str, Dict[str, Any]]:
        nested: Dict[str, Dict[str, Any]] = {}
        for key in sorted(self._sets):
            nested.setdefault(str(key.pool), {})[str(key.set)] = self._sets[key].to_api_response()
        return nested


@dataclass
class CountRecord(BaseModel):
    """A count that the server may have failed to compute.

    When error is set the count is not meaningful.
    """
    count: int = wire('count', default=0)
    error: str = wire('error', default='', omitempty=True)

    @property
    def ok(self) -> bool:
        return not self.error

    @property
    def value(self) -> Optional[int]:
        """The count, or None when the server reported an error"""
        return None if self.error else self.count


@dataclass
class Buckets(CountRecord):
    pass


@dataclass
class Objects(CountRecord):
    pass


@dataclass
class Versions(CountRecord):
    pass


@dataclass
class DeleteMarkers(CountRecord):
    pass


@dataclass
class Usage(BaseModel):
    """Total size used, or the error that prevented computing it"""
    size: int = wire('size', default=0)
    error: str = wire('error', default='', omitempty=True)

    @property
    def ok(self) -> bool:
        return not self.error

    @property
    def value(self) -> Optional[int]:
        return None if self.error else self.size


@dataclass
class KMS(BaseModel):
    status: str = wire('status', default='', omitempty=True)
    encrypt: str = wire('encrypt', default='', omitempty=True)
    decrypt: str = wire('decrypt', default='', omitempty=True)
    endpoint: str = wire('endpoint', default='', omitempty=True)
    version: str = wire('version', default='', omitempty=True)


@dataclass
class LDAP(BaseModel):
    status: str = wire('status', default='', omitempty=True)


@dataclass
class Status(BaseModel):
    status: str = wire('status', default='', omitempty=True)


_status_map = map_of(Status.from_api_response)


@dataclass(frozen=True)
class ARN:
    """Resource name of a configured notification target"""
    Type: str = ''
    ID: str = ''
    Region: str = ''
    Resource: str = ''
    Bucket: str = ''

    def __str__(self) -> str:
        return f"arn:minio:{self.Type}:{self.Region}:{self.ID}:{self.Bucket or self.Resource}"


class NotificationTarget(NamedTuple):
    """One (target type, target id) pair from Services.notifications"""
    target_type: str
    target_id: str
    status: Status


@dataclass
class Services(BaseModel):
    """Status of the services a deployment talks to"""
    kms: KMS = wire('kms', default_factory=KMS, omitempty=True, decode=KMS.from_api_response)  # deprecated
    kmsStatus: List[KMS] = wire('kmsStatus', default_factory=list, omitempty=True,
                                decode=list_of(KMS.from_api_response))
    ldap: LDAP = wire('ldap', default_factory=LDAP, omitempty=True, decode=LDAP.from_api_response)
    logger: List[Dict[str, Status]] = wire('logger', default_factory=list, omitempty=True, decode=list_of(_status_map))
    audit: List[Dict[str, Status]] = wire('audit', default_factory=list, omitempty=True, decode=list_of(_status_map))
    # config -> target type -> [ {target id -> status} ]
    notifications: List[Dict[str, List[Dict[str, Status]]]] = wire(
        'notifications', default_factory=list, omitempty=True, decode=list_of(map_of(list_of(_status_map))))

    def notification_targets(self) -> List[NotificationTarget]:
        """Flatten notifications into one entry per target"""
        targets = []
        for notify in self.notifications:
            for target_type, target_statuses in notify.items():
                for target_status in target_statuses:
                    for target_id, status in target_status.items():
                        targets.append(NotificationTarget(target_type, target_id, status))
        return targets

    def list_notification_arns(self) -> List[ARN]:
        """ARNs of every configured notification target. Order is not significant."""
        return [
            ARN(Type="sqs", ID=target.target_id, Resource=target.target_type)
            for target in self.notification_targets()
        ]


@dataclass
class FSBackend(BaseModel):
    type: str = wire('backendType', default=FS_TYPE)


@dataclass
class ErasureBackend(BaseModel):
    """Backend summary carried by InfoMessage"""
    type: str = wire('backendType', default='')
    onlineDisks: int = wire('onlineDisks', default=0)
    offlineDisks: int = wire('offlineDisks', default=0)
    standardSCParity: int = wire('standardSCParity', default=0)  # parity for the standard storage class
    rrSCParity: int = wire('rrSCParity', default=0)  # parity for the reduced redundancy storage class
    totalSets: List[int] = wire('totalSets', default_factory=list, decode=int_list)
    drivesPerSet: List[int] = wire('totalDrivesPerSet', default_factory=list, decode=int_list)


@dataclass
class MemStats(BaseModel):
    alloc: int = wire('Alloc', default=0)
    totalAlloc: int = wire('TotalAlloc', default=0)
    mallocs: int = wire('Mallocs', default=0)
    frees: int = wire('Frees', default=0)
    heapAlloc: int = wire('HeapAlloc', default=0)


@dataclass
class GCStats(BaseModel):
    """Recent garbage collections; durations are nanoseconds"""
    lastGC: Optional[datetime] = wire('last_gc', decode=parse_time, encode=format_time)
    numGC: int = wire('num_gc', default=0)
    pauseTotal: int = wire('pause_total', default=0)
    pause: List[int] = wire('pause', default_factory=list, decode=int_list)  # most recent first
    pauseEnd: List[Optional[datetime]] = wire('pause_end', default_factory=list, decode=time_list,
                                              encode=lambda values: [format_time(v) for v in values])


@dataclass
class LicenseInfo(BaseModel):
    id: str = wire('ID', default='')
    organization: str = wire('Organization', default='')
    plan: str = wire('Plan', default='')
    issuedAt: Optional[datetime] = wire('IssuedAt', decode=parse_time, encode=format_time)
    expiresAt: Optional[datetime] = wire('ExpiresAt', decode=parse_time, encode=format_time)
    trial: bool = wire('Trial', default=False)
    apiKey: str = wire('APIKey', default='')


@dataclass
class ServerProperties(BaseModel):
    """One server of the deployment"""
    state: str = wire('state', default='', omitempty=True)
    endpoint: str = wire('endpoint', default='', omitempty=True)
    scheme: str = wire('scheme', default='', omitempty=True)
    uptime: int = wire('uptime', default=0, omitempty=True)
    version: str = wire('version', default='', omitempty=True)
    commitID: str = wire('commitID', default='', omitempty=True)
    network: Dict[str, str] = wire('network', default_factory=dict, omitempty=True, decode=str_map)
    disks: List[Disk] = wire('drives', default_factory=list, omitempty=True, decode=list_of(Disk.from_api_response))
    poolNumber: int = wire('poolNumber', default=0, omitempty=True)  # only set if len(poolNumbers) == 1
    poolNumbers: List[int] = wire('poolNumbers', default_factory=list, omitempty=True, decode=int_list)
    memStats: MemStats = wire('mem_stats', default_factory=MemStats, decode=MemStats.from_api_response)
    goMaxProcs: int = wire('go_max_procs', default=0, omitempty=True)
    numCPU: int = wire('num_cpu', default=0, omitempty=True)
    runtimeVersion: str = wire('runtime_version', default='', omitempty=True)
    gcStats: Optional[GCStats] = wire('gc_stats', omitempty=True, decode=GCStats.from_api_response)
    minioEnvVars: Dict[str, str] = wire('minio_env_vars', default_factory=dict, omitempty=True, decode=str_map)
    edition: str = wire('edition', default='')
    license: Optional[LicenseInfo] = wire('license', omitempty=True, decode=LicenseInfo.from_api_response)
    isLeader: bool = wire('is_leader', default=False)
    ilmExpiryInProgress: bool = wire('ilm_expiry_in_progress', default=False)

    def pool_membership(self) -> List[int]:
        """Pools this server belongs to.

        poolNumber alone is only trustworthy when poolNumbers is empty.
        """
        if self.poolNumbers:
            return list(self.poolNumbers)
        return [self.poolNumber]

    @property
    def item_state(self) -> Optional[ItemState]:
        try:
            return ItemState(self.state)
        except ValueError:
            return None


@dataclass
class InfoMessage(BaseModel):
    """Server admin info document for the whole deployment"""
    mode: str = wire('mode', default='', omitempty=True)
    domain: List[str] = wire('domain', default_factory=list, omitempty=True, decode=str_list)
    region: str = wire('region', default='', omitempty=True)
    sqsARN: List[str] = wire('sqsARN', default_factory=list, omitempty=True, decode=str_list)
    deploymentID: str = wire('deploymentID', default='', omitempty=True)
    buckets: Buckets = wire('buckets', default_factory=Buckets, omitempty=True, decode=Buckets.from_api_response)
    objects: Objects = wire('objects', default_factory=Objects, omitempty=True, decode=Objects.from_api_response)
    versions: Versions = wire('versions', default_factory=Versions, omitempty=True, decode=Versions.from_api_response)
    deleteMarkers: DeleteMarkers = wire('deletemarkers', default_factory=DeleteMarkers, omitempty=True,
                                        decode=DeleteMarkers.from_api_response)
    usage: Usage = wire('usage', default_factory=Usage, omitempty=True, decode=Usage.from_api_response)
    services: Services = wire('services', default_factory=Services, omitempty=True, decode=Services.from_api_response)
    backend: ErasureBackend = wire('backend', default_factory=ErasureBackend, omitempty=True,
                                   decode=ErasureBackend.from_api_response)
    servers: List[ServerProperties] = wire('servers', default_factory=list, omitempty=True,
                                           decode=list_of(ServerProperties.from_api_response))
    pools: PoolTopology = wire('pools', default_factory=PoolTopology, omitempty=True,
                               decode=PoolTopology.from_api_response)

    def backend_type(self) -> BackendType:
        if self.backend.type == ERASURE_TYPE:
            return BackendType.ERASURE
        if self.backend.type == FS_TYPE:
            return BackendType.FS
        return BackendType.UNKNOWN

    def standard_parity(self) -> int:
        """Standard storage class parity, -1 when the backend is not erasure coded"""
        if self.backend_type() == BackendType.ERASURE:
            return self.backend.standardSCParity
        return -1

    @property
    def parity(self) -> Optional[int]:
        """Standard storage class parity, None when parity does not apply"""
        if self.backend_type() == BackendType.ERASURE:
            return self.backend.standardSCParity
        return None

    def all_disks(self) -> List[Disk]:
        return [disk for server in self.servers for disk in server.disks]


@dataclass
class ServerInfoOpts:
    """Extra data to ask for when fetching server info"""
    metrics: bool = False  # per-drive API metrics
