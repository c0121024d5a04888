"""
Tests for the snapshot readers.
"""
import json
import logging
import unittest
from datetime import datetime, timezone
from pathlib import Path
from tempfile import TemporaryDirectory

from .batched_json_reader import BatchedJsonReader, parse_snapshot_name
from .json_reader import JsonReader, read_storage_info, read_server_info
from ..errors import SnapshotDecodeError
from ..schema.models import StorageInfo

DEPLOYMENT_ID = "4c5d2e8a-0f51-4b0e-9d7a-2f3c1f0c7a11"


class TestJsonReader(unittest.TestCase):
    """Test cases for JsonReader class."""

    def setUp(self):
        """Set up test environment."""
        self.temp_dir = TemporaryDirectory()
        self.temp_path = Path(self.temp_dir.name)

        self.storage_info_data = {
            "Disks": [{"endpoint": "http://node1:9000/data1", "path": "/data1", "state": "ok",
                       "totalspace": 4000, "usedspace": 1000, "pool_index": 0, "set_index": 0, "disk_index": 0}],
            "Backend": {"Type": 2, "OnlineDisks": {"http://node1:9000": 1}, "DrivesPerSet": [4]},
        }

        self.json_file = self.temp_path / f"storageinfo_{DEPLOYMENT_ID}_1757410112.json"
        with open(self.json_file, 'w', encoding='utf-8') as f:
            json.dump(self.storage_info_data, f)

    def tearDown(self):
        """Clean up after tests."""
        self.temp_dir.cleanup()

    def test_read_file(self):
        """Test reading a JSON file."""
        data = JsonReader.read_file(self.json_file)
        self.assertEqual(data["Backend"]["Type"], 2)

    def test_read_wrapped_file(self):
        """Test that the deployment wrapper is stripped."""
        wrapped_file = self.temp_path / "wrapped.json"
        with open(wrapped_file, 'w', encoding='utf-8') as f:
            json.dump({"deployment_id": DEPLOYMENT_ID, "data": self.storage_info_data}, f)

        self.assertEqual(JsonReader.read_file(wrapped_file), self.storage_info_data)

    def test_read_model_from_file(self):
        """Test reading and converting to a model."""
        storage_info = JsonReader.read_model_from_file(self.json_file, StorageInfo)
        self.assertIsInstance(storage_info, StorageInfo)
        self.assertEqual(storage_info.disks[0].totalSpace, 4000)
        self.assertEqual(storage_info.backend.drivesPerSet, [4])

    def test_nonexistent_file(self):
        """Test reading a file that doesn't exist."""
        with self.assertRaises(FileNotFoundError):
            JsonReader.read_file(self.temp_path / "nonexistent.json")

    def test_invalid_json(self):
        """Test reading a file with invalid JSON."""
        invalid_json_file = self.temp_path / "invalid.json"
        with open(invalid_json_file, 'w', encoding='utf-8') as f:
            f.write("This is not valid JSON")

        with self.assertRaises(SnapshotDecodeError) as ctx:
            JsonReader.read_file(invalid_json_file)
        self.assertEqual(ctx.exception.source, str(invalid_json_file))

    def test_wrong_shape(self):
        """Test a document that is JSON but not a StorageInfo."""
        wrong_file = self.temp_path / "wrong.json"
        with open(wrong_file, 'w', encoding='utf-8') as f:
            json.dump({"Disks": {"not": "a list"}}, f)

        with self.assertRaises(SnapshotDecodeError):
            read_storage_info(wrong_file)

    def test_convenience_function(self):
        """Test convenience function for reading server info."""
        info_file = self.temp_path / "info.json"
        with open(info_file, 'w', encoding='utf-8') as f:
            json.dump({"deploymentID": DEPLOYMENT_ID, "mode": "online"}, f)

        info = read_server_info(info_file)
        self.assertEqual(info.deploymentID, DEPLOYMENT_ID)

    def test_extract_timestamp_from_filename(self):
        """Test timestamps embedded in snapshot names."""
        self.assertEqual(JsonReader.extract_timestamp_from_filename(self.json_file),
                         datetime(2025, 9, 9, 9, 28, 32, tzinfo=timezone.utc))
        self.assertIsNone(JsonReader.extract_timestamp_from_filename("storageinfo.json"))
        self.assertIsNone(JsonReader.extract_timestamp_from_filename("a_b_notatime.json"))


class TestBatchedJsonReader(unittest.TestCase):
    """Test cases for BatchedJsonReader class."""

    def setUp(self):
        self.temp_dir = TemporaryDirectory()
        self.temp_path = Path(self.temp_dir.name)

    def tearDown(self):
        self.temp_dir.cleanup()

    def _write(self, kind, timestamp, deployment_id=DEPLOYMENT_ID):
        path = self.temp_path / f"{kind}_{deployment_id}_{timestamp}.json"
        with open(path, 'w', encoding='utf-8') as f:
            json.dump({"deployment_id": deployment_id, "data": {}}, f)
        return str(path)

    def test_parse_snapshot_name(self):
        self.assertEqual(parse_snapshot_name(f"/tmp/info_{DEPLOYMENT_ID}_1757410112.json"),
                         ("info", DEPLOYMENT_ID, 1757410112))
        self.assertEqual(parse_snapshot_name("info_my_cluster_10.json"), ("info", "my_cluster", 10))
        self.assertIsNone(parse_snapshot_name("info_10.json"))
        self.assertIsNone(parse_snapshot_name("info_abc_later.json"))

    def test_batches_by_window(self):
        self._write("storageinfo", 1200)
        self._write("info", 1210)
        self._write("storageinfo", 1260)

        reader = BatchedJsonReader(str(self.temp_path), batch_window_seconds=60)
        self.assertEqual(reader.get_total_batches(), 2)
        self.assertEqual(len(reader.get_current_batch()), 2)
        self.assertTrue(reader.has_more_batches())

        self.assertTrue(reader.advance_to_next_batch())
        self.assertEqual(len(reader.get_current_batch()), 1)
        self.assertFalse(reader.has_more_batches())
        self.assertFalse(reader.advance_to_next_batch())
        self.assertEqual(reader.get_current_batch(), [])
        self.assertIsNone(reader.get_current_batch_time())

        reader.reset()
        self.assertEqual(reader.get_current_batch_time(), datetime.fromtimestamp(1210, tz=timezone.utc))

    def test_latest_file_per_kind(self):
        self._write("storageinfo", 1200)
        latest = self._write("storageinfo", 1230)
        self._write("info", 1210)

        reader = BatchedJsonReader(str(self.temp_path))
        by_kind = reader.get_current_batch_by_kind()
        self.assertEqual(by_kind["storageinfo"], latest)
        self.assertIn("info", by_kind)
        self.assertNotIn("datausageinfo", by_kind)

    def test_deployment_filter(self):
        self._write("info", 1200)
        self._write("info", 1200, deployment_id="other-cluster")

        self.assertEqual(BatchedJsonReader(str(self.temp_path)).deployment_ids(),
                         [DEPLOYMENT_ID, "other-cluster"])
        reader = BatchedJsonReader(str(self.temp_path), deployment_id_filter=DEPLOYMENT_ID)
        self.assertEqual(reader.deployment_ids(), [DEPLOYMENT_ID])
        self.assertEqual(len(reader.get_current_batch()), 1)

    def test_empty_directory(self):
        reader = BatchedJsonReader(str(self.temp_path))
        self.assertEqual(reader.get_total_batches(), 0)
        self.assertEqual(reader.get_current_batch(), [])
        self.assertFalse(reader.advance_to_next_batch())

    def test_invalid_window(self):
        with self.assertRaises(ValueError):
            BatchedJsonReader(str(self.temp_path), batch_window_seconds=0)


if __name__ == '__main__':
    logging.basicConfig(level=logging.ERROR)
    unittest.main()
