"""
Tests for topology aggregation and measurement building.
"""
import unittest
from functools import reduce

from .measurements import (
    ClusterReport, build_measurements, MEASUREMENT_BUCKET, MEASUREMENT_CLUSTER, MEASUREMENT_DRIVE,
    MEASUREMENT_ERASURE_SET, MEASUREMENT_HISTOGRAM, MEASUREMENT_INFO, MEASUREMENT_SERVER,
    MEASUREMENT_TIER, MEASUREMENT_USAGE
)
from .topology import (
    fold_backend_disks, group_disks_by_pool, merge_histograms, merge_storage_infos,
    summarize_cluster, summarize_erasure_sets, usable_capacity
)
from ..schema.models import (
    BackendDisks, BackendInfo, BackendType, DataUsageInfo, Disk, ErasureSetKey, InfoMessage,
    StorageInfo, UNASSIGNED_INDEX
)
from ..schema.tests import sample_info_message, sample_storage_info

DEPLOYMENT_ID = "4c5d2e8a-0f51-4b0e-9d7a-2f3c1f0c7a11"


def make_disk(node, path, pool=0, erasure_set=0, index=0, total=1000, used=100, state="ok", healing=False):
    return Disk(endpoint=f"http://{node}:9000{path}", drivePath=path, state=state, healing=healing,
                totalSpace=total, usedSpace=used, poolIndex=pool, setIndex=erasure_set, diskIndex=index)


class TestFoldBackendDisks(unittest.TestCase):
    """Test cases for folding BackendDisks observations."""

    def test_fold_equals_chained_merge(self):
        observations = [BackendDisks({"a": 1}), BackendDisks({"a": 2, "b": 3}), BackendDisks({"b": 1})]
        expected = reduce(lambda left, right: left.merge(right), observations)
        self.assertEqual(fold_backend_disks(observations), expected)
        self.assertEqual(fold_backend_disks(observations), {"a": 3})

    def test_first_observation_decides_keys(self):
        self.assertEqual(fold_backend_disks([{"b": 1}, {"a": 1, "b": 1}]), {"b": 2})

    def test_empty_and_missing(self):
        self.assertEqual(fold_backend_disks([]), BackendDisks())
        self.assertEqual(fold_backend_disks([None, {"a": 1}]), {})
        self.assertEqual(fold_backend_disks([{"a": 1}, None]), {"a": 1})

    def test_inputs_not_modified(self):
        first = BackendDisks({"a": 1})
        fold_backend_disks([first, {"a": 5}])
        self.assertEqual(first, {"a": 1})


class TestMergeStorageInfos(unittest.TestCase):
    """Test cases for combining StorageInfo snapshots."""

    def test_merge(self):
        first = StorageInfo(
            disks=[make_disk("node1", "/data1", used=100)],
            backend=BackendInfo(type=BackendType.ERASURE, onlineDisks=BackendDisks({"node1": 1}),
                                drivesPerSet=[2], standardSCParities=[1]),
        )
        second = StorageInfo(
            disks=[make_disk("node1", "/data1", used=300), make_disk("node2", "/data1", index=1)],
            backend=BackendInfo(type=BackendType.ERASURE, onlineDisks=BackendDisks({"node1": 1, "node2": 1})),
        )

        merged = merge_storage_infos([first, second])
        self.assertEqual(len(merged.disks), 2)
        replaced = [d for d in merged.disks if d.endpoint == "http://node1:9000/data1"][0]
        self.assertEqual(replaced.usedSpace, 300)
        # second repeats node1:/data1, so only its drive reports are taken
        self.assertEqual(merged.backend.onlineDisks, {"node1": 1})
        self.assertEqual(merged.backend.drivesPerSet, [2])
        self.assertEqual(first.backend.onlineDisks, {"node1": 1})

    def test_same_snapshot_twice_counts_drives_once(self):
        full = StorageInfo(
            disks=[make_disk("n1", "/data1"), make_disk("n2", "/data1", index=1)],
            backend=BackendInfo(type=BackendType.ERASURE, onlineDisks=BackendDisks({"n1": 1, "n2": 1})),
        )
        merged = merge_storage_infos([full, full])
        self.assertEqual(len(merged.disks), 2)
        self.assertEqual(merged.backend.onlineDisks, {"n1": 1, "n2": 1})
        self.assertEqual(merged.backend.onlineDisks.sum(), len(merged.disks))

    def test_disjoint_snapshots_fold_their_counts(self):
        first = StorageInfo(
            disks=[make_disk("n1", "/data1")],
            backend=BackendInfo(onlineDisks=BackendDisks({"n1": 1}), offlineDisks=BackendDisks({"n1": 0})),
        )
        second = StorageInfo(
            disks=[make_disk("n1", "/data2", index=1, state="offline")],
            backend=BackendInfo(onlineDisks=BackendDisks({"n1": 0}), offlineDisks=BackendDisks({"n1": 1})),
        )
        merged = merge_storage_infos([first, second])
        self.assertEqual(len(merged.disks), 2)
        self.assertEqual(merged.backend.onlineDisks, {"n1": 1})
        self.assertEqual(merged.backend.offlineDisks, {"n1": 1})

    def test_merge_nothing(self):
        self.assertEqual(merge_storage_infos([]), StorageInfo())


class TestTopology(unittest.TestCase):
    """Test cases for erasure set rollups and capacity."""

    def setUp(self):
        self.storage_info = StorageInfo.from_api_response(sample_storage_info())

    def test_group_disks_by_pool(self):
        disks = [make_disk("node1", "/d1"), make_disk("node1", "/d2", pool=1),
                 Disk(endpoint="http://node9:9000/new")]
        grouped = group_disks_by_pool(disks)
        self.assertEqual(sorted(grouped), [UNASSIGNED_INDEX, 0, 1])
        self.assertEqual(len(grouped[UNASSIGNED_INDEX]), 1)

    def test_summarize_erasure_sets(self):
        topology = summarize_erasure_sets(self.storage_info)
        self.assertEqual(list(topology), [ErasureSetKey(0, 0)])
        info = topology[(0, 0)]
        self.assertEqual(info.id, 0)
        self.assertEqual(info.rawCapacity, 4000)
        self.assertEqual(info.rawUsage, 1000)
        self.assertEqual(info.onlineDisks, 1)
        self.assertEqual(info.offlineDisks, 1)
        self.assertEqual(info.nodes, ["node1:9000", "node2:9000"])
        self.assertEqual(info.objectsCount, 0)

    def test_usable_capacity(self):
        self.assertEqual(usable_capacity(self.storage_info), 2000)

    def test_usable_capacity_skips_pools_without_layout(self):
        storage_info = StorageInfo(
            disks=[make_disk("node1", "/d1", total=1200), make_disk("node1", "/d2", pool=1, total=1200)],
            backend=BackendInfo(type=BackendType.ERASURE, drivesPerSet=[4], standardSCParities=[1]),
        )
        with self.assertLogs('clusterinfo.enrichment.topology', level='WARNING'):
            self.assertEqual(usable_capacity(storage_info), 900)

    def test_summarize_cluster(self):
        summary = summarize_cluster(self.storage_info)
        self.assertEqual(summary.backend_type, BackendType.ERASURE)
        self.assertEqual(summary.total_disks, 2)
        self.assertEqual(summary.online_disks, 1)
        self.assertEqual(summary.offline_disks, 1)
        self.assertEqual(summary.raw_capacity, 4000)
        self.assertEqual(summary.usable_capacity, 2000)
        self.assertEqual(summary.pools, 1)
        self.assertEqual(summary.erasure_sets, 1)
        self.assertEqual(summary.standard_parity, 1)
        self.assertEqual(summary.oversubscribed_sets, [])

    def test_summarize_cluster_prefers_info_parity(self):
        info = InfoMessage.from_api_response(sample_info_message())
        self.assertEqual(summarize_cluster(self.storage_info, info).standard_parity, 2)

    def test_oversubscribed_set_is_reported(self):
        storage_info = StorageInfo(
            disks=[make_disk("node1", f"/d{i}", index=i) for i in range(3)],
            backend=BackendInfo(type=BackendType.ERASURE, drivesPerSet=[2], standardSCParities=[1]),
        )
        with self.assertLogs('clusterinfo.enrichment.topology', level='WARNING'):
            summary = summarize_cluster(storage_info)
        self.assertEqual(summary.oversubscribed_sets, [ErasureSetKey(0, 0)])
        self.assertEqual(summary.to_dict()['oversubscribed_sets'], [[0, 0]])

    def test_merge_histograms(self):
        usage = DataUsageInfo.from_api_response({"bucketsUsageInfo": {
            "a": {"objectsSizesHistogram": {"LESS_THAN_1024_B": 2}, "objectsVersionsHistogram": {"SINGLE_VERSION": 2}},
            "b": {"objectsSizesHistogram": {"LESS_THAN_1024_B": 3, "BETWEEN_1024_B_AND_1_MB": 1}},
        }})
        sizes, versions = merge_histograms(usage)
        self.assertEqual(sizes, {"LESS_THAN_1024_B": 5, "BETWEEN_1024_B_AND_1_MB": 1})
        self.assertEqual(versions, {"SINGLE_VERSION": 2})


class TestBuildMeasurements(unittest.TestCase):
    """Test cases for flattening a ClusterReport."""

    def setUp(self):
        self.report = ClusterReport(
            deployment_id=DEPLOYMENT_ID,
            storage_info=StorageInfo.from_api_response(sample_storage_info()),
            data_usage=DataUsageInfo.from_api_response({
                "objectsCount": 120, "bucketsCount": 1,
                "bucketsUsageInfo": {"photos": {"size": 512, "objectsCount": 120,
                                                "objectsSizesHistogram": {"LESS_THAN_1024_B": 120}}},
                "tierStats": {"cold": {"totalSize": 100, "numVersions": 2, "numObjects": 1}},
                "capacity": 1000, "freeCapacity": 400, "usedCapacity": 600,
            }),
            server_info=InfoMessage.from_api_response(sample_info_message()),
            collected_at=1757410112,
        )

    def test_all_measurements(self):
        measurements = build_measurements(self.report)
        self.assertEqual(set(measurements), {
            MEASUREMENT_CLUSTER, MEASUREMENT_DRIVE, MEASUREMENT_ERASURE_SET, MEASUREMENT_USAGE,
            MEASUREMENT_BUCKET, MEASUREMENT_TIER, MEASUREMENT_HISTOGRAM, MEASUREMENT_SERVER, MEASUREMENT_INFO,
        })
        for records in measurements.values():
            for record in records:
                self.assertEqual(record['tags']['deployment_id'], DEPLOYMENT_ID)
                self.assertEqual(record['time'], 1757410112)

    def test_cluster_record(self):
        cluster = build_measurements(self.report)[MEASUREMENT_CLUSTER][0]
        self.assertEqual(cluster['tags']['backend_type'], 'ERASURE')
        self.assertEqual(cluster['fields']['usable_capacity'], 2000)
        self.assertEqual(cluster['fields']['standard_parity'], 2)
        self.assertEqual(cluster['fields']['oversubscribed_sets'], 0)

    def test_drive_records(self):
        drives = build_measurements(self.report)[MEASUREMENT_DRIVE]
        self.assertEqual(len(drives), 2)
        self.assertEqual(drives[0]['tags']['pool'], '0')
        self.assertEqual(drives[0]['fields']['online'], 1)
        self.assertEqual(drives[1]['tags']['state'], 'offline')

    def test_erasure_sets_come_from_server_rollup(self):
        sets = build_measurements(self.report)[MEASUREMENT_ERASURE_SET]
        self.assertEqual(len(sets), 1)
        self.assertEqual(sets[0]['fields']['objects_count'], 120)

    def test_erasure_sets_fall_back_to_drives(self):
        self.report.server_info = None
        sets = build_measurements(self.report)[MEASUREMENT_ERASURE_SET]
        self.assertEqual(sets[0]['fields']['raw_capacity'], 4000)
        self.assertEqual(sets[0]['fields']['objects_count'], 0)

    def test_info_record_leaves_out_failed_counts(self):
        with self.assertLogs('clusterinfo.enrichment.measurements', level='WARNING'):
            info = build_measurements(self.report)[MEASUREMENT_INFO][0]
        self.assertEqual(info['fields']['objects'], 120)
        self.assertNotIn('versions', info['fields'])
        self.assertEqual(info['fields']['notification_targets'], 3)
        self.assertEqual(info['tags']['region'], 'us-east-1')

    def test_usage_records(self):
        measurements = build_measurements(self.report)
        self.assertEqual(measurements[MEASUREMENT_USAGE][0]['fields']['used_capacity'], 600)
        self.assertNotIn('last_update', measurements[MEASUREMENT_USAGE][0]['fields'])
        self.assertEqual(measurements[MEASUREMENT_BUCKET][0]['tags']['bucket'], 'photos')
        self.assertEqual(measurements[MEASUREMENT_TIER][0]['fields']['total_size'], 100)
        histogram = measurements[MEASUREMENT_HISTOGRAM]
        self.assertEqual(histogram[0]['tags'], {'deployment_id': DEPLOYMENT_ID, 'kind': 'size',
                                                'range': 'LESS_THAN_1024_B'})

    def test_server_records(self):
        server = build_measurements(self.report)[MEASUREMENT_SERVER][0]
        self.assertEqual(server['fields']['mem_alloc'], 2048)
        self.assertEqual(server['fields']['is_leader'], 1)
        self.assertEqual(server['fields']['online_drives'], 1)

    def test_missing_documents(self):
        report = ClusterReport(deployment_id=DEPLOYMENT_ID, data_usage=self.report.data_usage)
        measurements = build_measurements(report)
        self.assertNotIn(MEASUREMENT_DRIVE, measurements)
        self.assertNotIn(MEASUREMENT_ERASURE_SET, measurements)
        self.assertIn(MEASUREMENT_USAGE, measurements)
        self.assertEqual(build_measurements(ClusterReport()), {})


if __name__ == '__main__':
    unittest.main()
