"""
Tests for the admin document models and their wire codec.
"""
import unittest
from datetime import datetime, timezone

from .base_model import parse_time, format_time, GO_ZERO_TIME
from .models import (
    ARN, BackendDisks, BackendInfo, BackendType, DataUsageInfo, Disk, ErasureSetInfo, FSBackend,
    ErasureSetKey, InfoMessage, ItemState, PoolTopology, ServerProperties, Services, StorageInfo, TimedAction,
    UNASSIGNED_INDEX
)
from ..errors import TopologyError


def sample_storage_info():
    return {
        "Disks": [
            {"endpoint": "http://node1:9000/data1", "path": "/data1", "state": "ok",
             "uuid": "6a1f2c1e", "major": 8, "minor": 16,
             "totalspace": 4000, "usedspace": 1000, "availspace": 3000,
             "readlatency": 0.5, "utilization": 25.0, "used_inodes": 10, "free_inodes": 90,
             "pool_index": 0, "set_index": 0, "disk_index": 0},
            {"endpoint": "http://node2:9000/data1", "path": "/data1", "state": "offline",
             "major": 0, "minor": 0, "used_inodes": 0,
             "pool_index": 0, "set_index": 0, "disk_index": 1,
             "heal_info": {"id": "d2", "heal_id": "h1", "pool_index": 0, "set_index": 0, "disk_index": 1,
                           "endpoint": "http://node2:9000/data1", "path": "/data1",
                           "started": "2024-05-01T10:00:00Z", "last_update": "0001-01-01T00:00:00Z",
                           "objects_total_count": 5, "objects_total_size": 50, "items_healed": 2,
                           "items_failed": 0, "items_skipped": 0, "bytes_done": 20, "bytes_failed": 0,
                           "bytes_skipped": 0, "current_bucket": "photos", "current_object": "a.jpg",
                           "queued_buckets": ["docs"], "healed_buckets": [], "finished": False}},
        ],
        "Backend": {
            "Type": 2, "GatewayOnline": False,
            "OnlineDisks": {"http://node1:9000": 1},
            "OfflineDisks": {"http://node2:9000": 1},
            "StandardSCData": [1], "StandardSCParities": [1],
            "RRSCData": [1], "RRSCParities": [1],
            "TotalSets": [1], "DrivesPerSet": [2],
        },
    }


def sample_info_message():
    return {
        "mode": "online",
        "region": "us-east-1",
        "deploymentID": "4c5d2e8a-0f51-4b0e-9d7a-2f3c1f0c7a11",
        "buckets": {"count": 3},
        "objects": {"count": 120},
        "versions": {"count": 130, "error": "scanner busy"},
        "deletemarkers": {"count": 4},
        "usage": {"size": 1048576},
        "services": {
            "notifications": [
                {"webhook": [{"1": {"status": "online"}}, {"2": {"status": "offline"}}]},
                {"amqp": [{"primary": {"status": "online"}}]},
            ],
        },
        "backend": {"backendType": "Erasure", "onlineDisks": 4, "offlineDisks": 0,
                    "standardSCParity": 2, "rrSCParity": 1, "totalSets": [1], "totalDrivesPerSet": [4]},
        "servers": [
            {"state": "online", "endpoint": "node1:9000", "uptime": 3600, "version": "2024-05-01",
             "drives": [{"endpoint": "http://node1:9000/data1", "state": "ok",
                         "pool_index": 0, "set_index": 0, "disk_index": 0}],
             "poolNumbers": [0, 1], "mem_stats": {"Alloc": 2048}, "num_cpu": 8,
             "edition": "community", "is_leader": True, "ilm_expiry_in_progress": False},
        ],
        "pools": {"0": {"0": {"id": 0, "rawUsage": 100, "rawCapacity": 400, "usage": 50,
                              "objectsCount": 120, "versionsCount": 130, "deleteMarkersCount": 4,
                              "healDisks": 0}}},
    }


class TestBackendDisks(unittest.TestCase):
    """Test cases for BackendDisks merge and sum."""

    def test_sum(self):
        self.assertEqual(BackendDisks({"a": 2, "b": 3}).sum(), 5)
        self.assertEqual(BackendDisks().sum(), 0)

    def test_merge_adds_shared_endpoints(self):
        merged = BackendDisks({"a": 1, "b": 2}).merge({"b": 3})
        self.assertEqual(merged, {"a": 1, "b": 5})

    def test_merge_drops_endpoints_only_in_other(self):
        merged = BackendDisks({"a": 1}).merge({"a": 1, "c": 7})
        self.assertEqual(merged, {"a": 2})
        self.assertNotIn("c", merged)

    def test_merge_is_not_commutative(self):
        left = BackendDisks({"a": 1})
        right = BackendDisks({"b": 2})
        self.assertEqual(left.merge(right), {"a": 1})
        self.assertEqual(right.merge(left), {"b": 2})

    def test_merge_with_nothing(self):
        disks = BackendDisks({"a": 4})
        self.assertEqual(disks.merge(None), {"a": 4})
        self.assertEqual(disks.merge({}), {"a": 4})
        self.assertEqual(BackendDisks().merge({"a": 4}), {})

    def test_merge_with_nothing_returns_a_copy(self):
        disks = BackendDisks({"a": 4})
        merged = disks.merge(None)
        merged["a"] = 99
        merged["b"] = 1
        self.assertEqual(disks, {"a": 4})

    def test_merge_example(self):
        merged = BackendDisks({"n1": 2, "n2": 3}).merge({"n1": 5, "n3": 9})
        self.assertEqual(merged, {"n1": 7, "n2": 3})

    def test_merge_leaves_operands_untouched(self):
        left = BackendDisks({"a": 1})
        right = BackendDisks({"a": 2})
        merged = left.merge(right)
        self.assertIsInstance(merged, BackendDisks)
        self.assertIsNot(merged, left)
        self.assertEqual(left, {"a": 1})
        self.assertEqual(right, {"a": 2})

    def test_decode_rejects_non_integer_counts(self):
        with self.assertRaises(TypeError):
            BackendDisks.from_api_response({"a": "four"})


class TestStorageInfo(unittest.TestCase):
    """Test cases for StorageInfo and its nested records."""

    def test_decode(self):
        info = StorageInfo.from_api_response(sample_storage_info())
        self.assertEqual(len(info.disks), 2)
        self.assertEqual(info.backend.type, BackendType.ERASURE)
        self.assertEqual(info.backend.onlineDisks.sum(), 1)
        self.assertEqual(info.backend.drivesPerSet, [2])

        first = info.disks[0]
        self.assertEqual(first.drivePath, "/data1")
        self.assertEqual(first.totalSpace, 4000)
        self.assertEqual(first.set_key, ErasureSetKey(0, 0))
        self.assertTrue(first.is_online)
        self.assertIsNone(first.healInfo)

        second = info.disks[1]
        self.assertFalse(second.is_online)
        self.assertEqual(second.healInfo.currentBucket, "photos")
        self.assertEqual(second.healInfo.started, datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc))
        self.assertIsNone(second.healInfo.lastUpdate)

    def test_round_trip(self):
        info = StorageInfo.from_api_response(sample_storage_info())
        self.assertEqual(StorageInfo.from_api_response(info.to_api_response()), info)

    def test_encode_uses_wire_keys(self):
        encoded = StorageInfo.from_api_response(sample_storage_info()).to_api_response()
        self.assertEqual(encoded["Backend"]["Type"], 2)
        self.assertEqual(encoded["Backend"]["OnlineDisks"], {"http://node1:9000": 1})
        self.assertEqual(encoded["Disks"][0]["totalspace"], 4000)
        self.assertEqual(encoded["Disks"][1]["heal_info"]["last_update"], GO_ZERO_TIME)

    def test_disk_omits_empty_optional_fields(self):
        encoded = Disk().to_api_response()
        self.assertEqual(encoded, {
            "major": 0, "minor": 0, "used_inodes": 0,
            "pool_index": UNASSIGNED_INDEX, "set_index": UNASSIGNED_INDEX, "disk_index": UNASSIGNED_INDEX,
        })

    def test_unplaced_disk(self):
        disk = Disk.from_api_response({"endpoint": "http://node3:9000/data1", "state": "unformatted"})
        self.assertFalse(disk.is_placed)
        self.assertIsNone(disk.set_key)
        self.assertEqual(disk.poolIndex, UNASSIGNED_INDEX)

    def test_disks_in_pool(self):
        info = StorageInfo.from_api_response(sample_storage_info())
        self.assertEqual(len(info.disks_in_pool(0)), 2)
        self.assertEqual(info.disks_in_pool(1), [])

    def test_wrong_json_types(self):
        with self.assertRaises(TypeError):
            StorageInfo.from_api_response({"Disks": "none"})
        with self.assertRaises(TypeError):
            Disk.from_api_response({"totalspace": "big"})
        with self.assertRaises(TypeError):
            Disk.from_api_response({"totalspace": True})
        with self.assertRaises(TypeError):
            StorageInfo.from_api_response([])

    def test_null_keeps_default(self):
        info = StorageInfo.from_api_response({"Disks": None})
        self.assertEqual(info.disks, [])

    def test_unknown_keys_are_kept_raw(self):
        disk = Disk.from_api_response({"endpoint": "e", "futureField": 1})
        self.assertEqual(disk.get_raw("futureField"), 1)
        self.assertNotIn("futureField", disk.to_api_response())

    def test_pool_count(self):
        backend = BackendInfo.from_api_response(sample_storage_info()["Backend"])
        self.assertEqual(backend.pool_count(), 1)
        self.assertEqual(BackendInfo().pool_count(), 0)

    def test_pool_count_mismatch(self):
        backend = BackendInfo(standardSCParities=[2, 2], drivesPerSet=[4])
        with self.assertRaises(TopologyError):
            backend.pool_count()


class TestInfoMessage(unittest.TestCase):
    """Test cases for InfoMessage."""

    def setUp(self):
        self.info = InfoMessage.from_api_response(sample_info_message())

    def test_decode(self):
        self.assertEqual(self.info.deploymentID, "4c5d2e8a-0f51-4b0e-9d7a-2f3c1f0c7a11")
        self.assertEqual(self.info.buckets.count, 3)
        self.assertEqual(len(self.info.servers), 1)
        self.assertEqual(self.info.servers[0].memStats.alloc, 2048)
        self.assertTrue(self.info.servers[0].isLeader)
        self.assertEqual(self.info.servers[0].pool_membership(), [0, 1])
        self.assertEqual(len(self.info.all_disks()), 1)

    def test_round_trip(self):
        self.assertEqual(InfoMessage.from_api_response(self.info.to_api_response()), self.info)

    def test_server_state(self):
        self.assertEqual(self.info.servers[0].item_state, ItemState.ONLINE)
        self.assertIsNone(ServerProperties(state="rebooting").item_state)
        self.assertEqual(ServerProperties(poolNumber=2).pool_membership(), [2])

    def test_drive_metrics(self):
        disk = Disk.from_api_response({"metrics": {"lastMinute": {"read": {"count": 4, "acc_time_ns": 200}},
                                                   "apiCalls": {"read": 4}}})
        self.assertEqual(disk.metrics.lastMinute["read"].avg_ns(), 50.0)
        self.assertEqual(disk.metrics.apiCalls, {"read": 4})
        self.assertEqual(TimedAction().avg_ns(), 0.0)

    def test_counts(self):
        self.assertTrue(self.info.objects.ok)
        self.assertEqual(self.info.objects.value, 120)
        self.assertFalse(self.info.versions.ok)
        self.assertIsNone(self.info.versions.value)
        self.assertEqual(self.info.usage.value, 1048576)

    def test_backend_type_and_parity(self):
        self.assertEqual(self.info.backend_type(), BackendType.ERASURE)
        self.assertEqual(self.info.standard_parity(), 2)
        self.assertEqual(self.info.parity, 2)

    def test_fs_backend_has_no_parity(self):
        backend = FSBackend().to_api_response()
        self.assertEqual(backend, {"backendType": "FS"})
        info = InfoMessage.from_api_response({"backend": dict(backend, standardSCParity=2)})
        self.assertEqual(info.backend_type(), BackendType.FS)
        self.assertEqual(info.standard_parity(), -1)
        self.assertIsNone(info.parity)

    def test_zero_parity_is_kept(self):
        info = InfoMessage.from_api_response({"backend": {"backendType": "Erasure", "standardSCParity": 0}})
        self.assertEqual(info.backend_type(), BackendType.ERASURE)
        self.assertEqual(info.standard_parity(), 0)
        self.assertEqual(info.parity, 0)

    def test_unrecognised_backend_tag(self):
        info = InfoMessage.from_api_response({"backend": {"backendType": "SomethingElse", "standardSCParity": 3}})
        self.assertEqual(info.backend_type(), BackendType.UNKNOWN)
        self.assertEqual(info.standard_parity(), -1)
        self.assertIsNone(info.parity)

    def test_unknown_backend(self):
        info = InfoMessage()
        self.assertEqual(info.backend_type(), BackendType.UNKNOWN)
        self.assertEqual(info.standard_parity(), -1)

    def test_empty_message_encodes_to_empty_object(self):
        self.assertEqual(InfoMessage().to_api_response(), {})

    def test_pools(self):
        pools = self.info.pools
        self.assertEqual(len(pools), 1)
        self.assertEqual(pools[(0, 0)].objectsCount, 120)
        self.assertEqual(pools.pools(), [0])
        self.assertEqual(self.info.to_api_response()["pools"]["0"]["0"]["rawCapacity"], 400)

    def test_pool_set_id_mismatch(self):
        data = sample_info_message()
        data["pools"] = {"0": {"1": {"id": 2}}}
        with self.assertRaises(TopologyError):
            InfoMessage.from_api_response(data)


class TestPoolTopology(unittest.TestCase):
    """Test cases for PoolTopology."""

    def test_put_checks_id(self):
        topology = PoolTopology()
        topology.put(ErasureSetKey(0, 1), ErasureSetInfo(id=1))
        with self.assertRaises(TopologyError):
            topology.put(ErasureSetKey(0, 2), ErasureSetInfo(id=3))
        self.assertEqual(len(topology), 1)

    def test_iteration_is_ordered(self):
        topology = PoolTopology()
        topology.add(1, ErasureSetInfo(id=0))
        topology.add(0, ErasureSetInfo(id=1))
        topology.add(0, ErasureSetInfo(id=0))
        self.assertEqual(list(topology), [(0, 0), (0, 1), (1, 0)])
        self.assertEqual([info.id for info in topology.sets_in_pool(0)], [0, 1])

    def test_rejects_non_object(self):
        with self.assertRaises(TypeError):
            PoolTopology.from_api_response([])


class TestServices(unittest.TestCase):
    """Test cases for notification ARNs."""

    def test_list_notification_arns(self):
        services = InfoMessage.from_api_response(sample_info_message()).services
        arns = services.list_notification_arns()
        self.assertEqual(len(arns), 3)
        self.assertCountEqual(arns, [
            ARN(Type="sqs", ID="1", Resource="webhook"),
            ARN(Type="sqs", ID="2", Resource="webhook"),
            ARN(Type="sqs", ID="primary", Resource="amqp"),
        ])
        self.assertIn("arn:minio:sqs::1:webhook", [str(arn) for arn in arns])

    def test_no_notifications(self):
        self.assertEqual(Services().list_notification_arns(), [])


class TestDataUsageInfo(unittest.TestCase):
    """Test cases for DataUsageInfo."""

    def test_decode(self):
        usage = DataUsageInfo.from_api_response({
            "lastUpdate": "2024-05-01T10:00:00.123456789Z",
            "objectsCount": 10,
            "bucketsCount": 1,
            "bucketsUsageInfo": {"photos": {"size": 512, "objectsCount": 10,
                                            "objectsSizesHistogram": {"LESS_THAN_1024_B": 10}}},
            "tierStats": {"cold": {"totalSize": 100, "numVersions": 2, "numObjects": 1},
                          "archive": {"totalSize": 50, "numVersions": 1, "numObjects": 1}},
            "capacity": 1000, "freeCapacity": 400, "usedCapacity": 600,
        })
        self.assertEqual(usage.lastUpdate.microsecond, 123456)
        self.assertEqual(usage.bucket_usage("photos").size, 512)
        self.assertEqual(usage.bucket_usage("missing").size, 0)
        self.assertEqual(usage.tier_totals().totalSize, 150)
        self.assertEqual(usage.totalUsedCapacity, 600)


class TestTimeCodec(unittest.TestCase):
    """Test cases for RFC 3339 timestamps."""

    def test_zero_time(self):
        self.assertIsNone(parse_time(GO_ZERO_TIME))
        self.assertEqual(format_time(None), GO_ZERO_TIME)

    def test_offset(self):
        parsed = parse_time("2024-05-01T12:00:00+02:00")
        self.assertEqual(format_time(parsed), "2024-05-01T10:00:00Z")

    def test_invalid(self):
        with self.assertRaises(ValueError):
            parse_time("yesterday")
        with self.assertRaises(TypeError):
            parse_time(12)


if __name__ == '__main__':
    unittest.main()
