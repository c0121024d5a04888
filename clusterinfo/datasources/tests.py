"""
Tests for the admin API and snapshot replay data sources.
"""
import json
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest import mock

import requests

from .auth import AdminSigV4Auth
from .base import SnapshotType
from .json_replay import JSONReplayDataSource, save_snapshot
from .live_api import AdminAPIDataSource
from ..errors import AdminAPIError, ClusterInfoError, SnapshotDecodeError
from ..schema.models import ServerInfoOpts
from ..schema.tests import sample_info_message, sample_storage_info

DEPLOYMENT_ID = "4c5d2e8a-0f51-4b0e-9d7a-2f3c1f0c7a11"


def make_response(status_code=200, body=None, text=''):
    response = mock.Mock(spec=requests.Response)
    response.status_code = status_code
    response.reason = 'Forbidden' if status_code == 403 else 'OK'
    response.text = text
    if body is None:
        response.json.side_effect = ValueError("Expecting value")
    else:
        response.json.return_value = body
    return response


class TestAdminAPIDataSource(unittest.TestCase):
    """Test cases for the live admin API data source."""

    def setUp(self):
        self.session = mock.Mock()
        self.datasource = AdminAPIDataSource({
            'endpoint': 'node1:9000/',
            'auth': AdminSigV4Auth('minioadmin', 'minioadmin'),
            'session': self.session,
        })
        self.assertTrue(self.datasource.initialize())

    def test_initialize_normalizes_endpoint(self):
        self.assertEqual(self.datasource.endpoint, 'https://node1:9000')
        self.assertIs(self.session.verify, True)
        self.assertIsInstance(self.session.auth, AdminSigV4Auth)

    def test_initialize_requires_endpoint(self):
        self.assertFalse(AdminAPIDataSource({}).initialize())

    def test_tls_validation_none(self):
        datasource = AdminAPIDataSource({'endpoint': 'http://node1:9000', 'tls_validation': 'none',
                                         'session': mock.Mock()})
        self.assertTrue(datasource.initialize())
        self.assertIs(datasource.session.verify, False)

    def test_tls_validation_strict_refuses_plain_http(self):
        datasource = AdminAPIDataSource({'endpoint': 'http://node1:9000', 'session': mock.Mock()})
        with self.assertLogs('clusterinfo.datasources.live_api', level='ERROR'):
            self.assertFalse(datasource.initialize())

    def test_tls_validation_strict_requires_existing_ca(self):
        datasource = AdminAPIDataSource({'endpoint': 'node1:9000', 'tls_ca': '/nonexistent/ca.pem',
                                         'session': mock.Mock()})
        self.assertFalse(datasource.initialize())

    def test_tls_validation_normal(self):
        datasource = AdminAPIDataSource({'endpoint': 'http://node1:9000', 'tls_validation': 'normal',
                                         'tls_ca': '/nonexistent/ca.pem', 'session': mock.Mock()})
        self.assertTrue(datasource.initialize())
        self.assertEqual(datasource.session.verify, '/nonexistent/ca.pem')

    def test_fetch_storage_info(self):
        self.session.get.return_value = make_response(body=sample_storage_info())

        storage_info = self.datasource.fetch_storage_info()
        self.assertEqual(len(storage_info.disks), 2)
        self.session.get.assert_called_once_with('https://node1:9000/minio/admin/v3/storageinfo',
                                                 params=None, timeout=30)

    def test_data_usage_capacity_flag(self):
        self.session.get.return_value = make_response(body={"bucketsCount": 2})

        self.assertEqual(self.datasource.fetch_data_usage_info(capacity=False).bucketsCount, 2)
        self.assertEqual(self.session.get.call_args.kwargs['params'], {'capacity': 'false'})
        self.datasource.fetch_data_usage_info()
        self.assertEqual(self.session.get.call_args.kwargs['params'], {'capacity': 'true'})

    def test_server_info_sets_deployment(self):
        self.session.get.return_value = make_response(body=sample_info_message())

        info = self.datasource.fetch_server_info(ServerInfoOpts(metrics=True))
        self.assertEqual(info.deploymentID, DEPLOYMENT_ID)
        self.assertEqual(self.session.get.call_args.args[0], 'https://node1:9000/minio/admin/v3/info')
        self.assertEqual(self.session.get.call_args.kwargs['params'], {'metrics': 'true'})
        self.assertEqual(self.datasource.deployment_info.deployment_id, DEPLOYMENT_ID)

    def test_error_response(self):
        self.session.get.return_value = make_response(403, body={
            "Code": "AccessDenied", "Message": "Access Denied.", "RequestId": "17F2A"})

        with self.assertRaises(AdminAPIError) as ctx:
            self.datasource.fetch_storage_info()
        self.assertEqual(ctx.exception.status_code, 403)
        self.assertEqual(ctx.exception.code, "AccessDenied")
        self.assertEqual(ctx.exception.request_id, "17F2A")

    def test_error_response_without_json(self):
        self.session.get.return_value = make_response(502, text='bad gateway')

        with self.assertRaises(AdminAPIError) as ctx:
            self.datasource.fetch_server_info()
        self.assertEqual(ctx.exception.message, 'bad gateway')

    def test_body_not_json(self):
        self.session.get.return_value = make_response(200, text='<html>')

        with self.assertRaises(SnapshotDecodeError):
            self.datasource.fetch_storage_info()

    def test_body_wrong_shape(self):
        self.session.get.return_value = make_response(body={"Disks": 5})

        with self.assertRaises(SnapshotDecodeError):
            self.datasource.fetch_storage_info()

    def test_collect_keeps_error(self):
        error = requests.ConnectionError("connection refused")
        self.session.get.side_effect = error

        result = self.datasource.collect(SnapshotType.STORAGE_INFO)
        self.assertFalse(result.success)
        self.assertIsNone(result.data)
        self.assertIs(result.error, error)
        self.assertEqual(result.error_message, "connection refused")
        self.assertEqual(result.metadata['source'], 'https://node1:9000')

    def test_collect_success(self):
        self.session.get.return_value = make_response(body={"bucketsCount": 1})

        result = self.datasource.collect(SnapshotType.DATA_USAGE_INFO, capacity=True)
        self.assertTrue(result.success)
        self.assertEqual(result.data.bucketsCount, 1)

    def test_not_initialized(self):
        datasource = AdminAPIDataSource({'endpoint': 'https://node1:9000'})
        with self.assertRaises(ClusterInfoError):
            datasource.fetch_storage_info()

    def test_cleanup_leaves_injected_session_open(self):
        self.datasource.cleanup()
        self.session.close.assert_not_called()
        self.assertIsNone(self.datasource.session)


class TestAdminSigV4Auth(unittest.TestCase):
    """Test cases for request signing."""

    def test_signs_request(self):
        request = requests.Request('GET', 'https://node1:9000/minio/admin/v3/info',
                                   params={'metrics': 'false'}).prepare()
        signed = AdminSigV4Auth('minioadmin', 'secret', region='eu-west-1')(request)

        authorization = signed.headers['Authorization']
        self.assertTrue(authorization.startswith('AWS4-HMAC-SHA256 Credential=minioadmin/'))
        self.assertIn('/eu-west-1/s3/aws4_request', authorization)
        self.assertIn('X-Amz-Date', signed.headers)
        self.assertIn('X-Amz-Content-SHA256', signed.headers)


class TestJSONReplayDataSource(unittest.TestCase):
    """Test cases for snapshot replay."""

    def setUp(self):
        self.temp_dir = TemporaryDirectory()
        self.temp_path = Path(self.temp_dir.name)

    def tearDown(self):
        self.temp_dir.cleanup()

    def _save_cycle(self, timestamp, deployment_id=DEPLOYMENT_ID):
        save_snapshot(self.temp_dir.name, 'storage_info', deployment_id, sample_storage_info(), timestamp)
        save_snapshot(self.temp_dir.name, 'server_info', deployment_id, sample_info_message(), timestamp)
        save_snapshot(self.temp_dir.name, 'data_usage_info', deployment_id, {"bucketsCount": 3}, timestamp)

    def test_save_snapshot(self):
        path = save_snapshot(self.temp_dir.name, 'storage_info', DEPLOYMENT_ID, {"Disks": []}, 1757410112)
        self.assertEqual(path.name, f"storageinfo_{DEPLOYMENT_ID}_1757410112.json")
        with open(path, 'r', encoding='utf-8') as f:
            self.assertEqual(json.load(f), {"deployment_id": DEPLOYMENT_ID, "data": {"Disks": []}})

    def test_replay(self):
        self._save_cycle(1200)
        self._save_cycle(1320)

        datasource = JSONReplayDataSource({'from_json': self.temp_dir.name})
        self.assertTrue(datasource.initialize())
        self.assertEqual(datasource.deployment_info.deployment_id, DEPLOYMENT_ID)

        self.assertEqual(len(datasource.fetch_storage_info().disks), 2)
        self.assertEqual(datasource.fetch_data_usage_info().bucketsCount, 3)
        self.assertEqual(datasource.fetch_server_info().deploymentID, DEPLOYMENT_ID)

        self.assertTrue(datasource.has_more_batches())
        self.assertTrue(datasource.advance_batch())
        self.assertFalse(datasource.has_more_batches())
        self.assertFalse(datasource.advance_batch())

    def test_missing_kind_in_batch(self):
        save_snapshot(self.temp_dir.name, 'server_info', DEPLOYMENT_ID, sample_info_message(), 1200)
        datasource = JSONReplayDataSource({'json_directory': self.temp_dir.name})
        self.assertTrue(datasource.initialize())

        result = datasource.collect(SnapshotType.STORAGE_INFO)
        self.assertFalse(result.success)
        self.assertIsInstance(result.error, FileNotFoundError)
        self.assertEqual(result.metadata['deployment_id'], DEPLOYMENT_ID)

    def test_several_deployments_need_a_filter(self):
        self._save_cycle(1200)
        self._save_cycle(1200, deployment_id="other-cluster")

        self.assertFalse(JSONReplayDataSource({'from_json': self.temp_dir.name}).initialize())
        datasource = JSONReplayDataSource({'from_json': self.temp_dir.name, 'deployment_id': 'other-cluster'})
        self.assertTrue(datasource.initialize())
        self.assertEqual(datasource.deployment_info.deployment_id, 'other-cluster')

    def test_no_snapshots(self):
        self.assertFalse(JSONReplayDataSource({'from_json': self.temp_dir.name}).initialize())
        self.assertFalse(JSONReplayDataSource({'from_json': str(self.temp_path / 'missing')}).initialize())


if __name__ == '__main__':
    unittest.main()
