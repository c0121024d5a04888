"""
Tests for reporter configuration and orchestration.
"""
import os
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest import mock

from .config import ReporterConfig
from .reporter import ClusterReporter
from .writer_config import WriterConfig
from ..config import Settings
from ..datasources.base import CollectionResult, DataSource, SnapshotType
from ..datasources.json_replay import save_snapshot
from ..enrichment.measurements import MEASUREMENT_DRIVE, MEASUREMENT_INFO
from ..main import create_argument_parser, validate_arguments
from ..schema.models import DataUsageInfo, InfoMessage, StorageInfo
from ..schema.tests import sample_info_message, sample_storage_info
from ..writer.base import Writer

DEPLOYMENT_ID = "4c5d2e8a-0f51-4b0e-9d7a-2f3c1f0c7a11"


def parse(*argv):
    return create_argument_parser().parse_args(list(argv))


class TestReporterConfig(unittest.TestCase):
    """Test cases for ReporterConfig."""

    def test_live_mode_needs_credentials(self):
        with self.assertRaises(ValueError):
            ReporterConfig(endpoints=['https://node1:9000'])
        config = ReporterConfig(endpoints=['https://node1:9000'], access_key='a', secret_key='s')
        self.assertEqual(config.datasource_configs(), [
            {'endpoint': 'https://node1:9000', 'tls_ca': None, 'tls_validation': 'strict'}])

    def test_replay_mode(self):
        config = ReporterConfig(use_json_replay=True, from_json='/tmp/snapshots', deployment_id=DEPLOYMENT_ID)
        self.assertEqual(config.datasource_configs(), [{'from_json': '/tmp/snapshots', 'deployment_id': DEPLOYMENT_ID}])
        with self.assertRaises(ValueError):
            ReporterConfig(use_json_replay=True)

    def test_validation(self):
        base = {'use_json_replay': True, 'from_json': '/tmp'}
        with self.assertRaises(ValueError):
            ReporterConfig(interval_time=61, **base)
        with self.assertRaises(ValueError):
            ReporterConfig(tls_validation='loose', **base)
        with self.assertRaises(ValueError):
            ReporterConfig(max_iterations=-1, **base)

    def test_from_args(self):
        args = parse('--endpoint', 'https://node1:9000', 'https://node2:9000', '--accessKey', 'admin',
                     '--secretKey', 'secret', '--intervalTime', '300', '--no-capacity', '--serverMetrics',
                     '--output', 'prometheus')
        config = ReporterConfig.from_args(args)
        self.assertFalse(config.use_json_replay)
        self.assertEqual(config.endpoints, ['https://node1:9000', 'https://node2:9000'])
        self.assertEqual(config.interval_time, 300)
        self.assertFalse(config.capacity)
        self.assertTrue(config.server_metrics)
        self.assertEqual(config.region, 'us-east-1')
        self.assertEqual(config.to_dict()['secret_key'], '[REDACTED]')

    def test_from_args_falls_back_to_settings(self):
        settings = Settings(from_env=False)
        settings.admin_endpoints = ['https://node3:9000']
        settings.access_key = 'env-admin'
        settings.secret_key = 'env-secret'
        settings.region = 'eu-west-1'

        config = ReporterConfig.from_args(parse('--accessKey', 'cli-admin'), settings=settings)
        self.assertEqual(config.endpoints, ['https://node3:9000'])
        self.assertEqual(config.access_key, 'cli-admin')
        self.assertEqual(config.secret_key, 'env-secret')
        self.assertEqual(config.region, 'eu-west-1')

    def test_validate_arguments(self):
        self.assertIsNone(validate_arguments(parse('--fromJson', '/tmp', '--deploymentId', DEPLOYMENT_ID)))
        self.assertIsNotNone(validate_arguments(parse('--deploymentId', DEPLOYMENT_ID)))
        self.assertIsNotNone(validate_arguments(parse('--intervalTime', '30')))
        self.assertIsNotNone(validate_arguments(parse('--maxIterations', '-2')))


class TestWriterConfig(unittest.TestCase):
    """Test cases for WriterConfig."""

    def test_influxdb_requires_connection_details(self):
        with self.assertRaises(ValueError):
            WriterConfig(output_format='influxdb', influxdb_url='http://db:8181')
        with self.assertRaises(ValueError):
            WriterConfig(output_format='csv')

    def test_to_dict(self):
        config = WriterConfig(output_format='both', influxdb_url='http://db:8181', influxdb_token='t',
                              influxdb_database='cluster', prometheus_port=9100, deployment_id=DEPLOYMENT_ID)
        as_dict = config.to_dict()
        self.assertEqual(as_dict['influxdb_database'], 'cluster')
        self.assertEqual(as_dict['prometheus_port'], 9100)
        self.assertEqual(as_dict['deployment_id'], DEPLOYMENT_ID)
        self.assertNotIn('influxdb_url', WriterConfig(output_format='prometheus').to_dict())

    def test_from_args(self):
        settings = Settings(from_env=False)
        settings.influxdb_url = 'http://db:8181'
        settings.influxdb_token = 'token'
        args = parse('--fromJson', '/tmp', '--influxdbDatabase', 'cluster', '--prometheus-port', '9200')

        config = WriterConfig.from_args(args, deployment_id=DEPLOYMENT_ID, settings=settings)
        self.assertEqual(config.influxdb_url, 'http://db:8181')
        self.assertEqual(config.influxdb_database, 'cluster')
        self.assertEqual(config.prometheus_port, 9200)


class TestSettings(unittest.TestCase):
    """Test cases for Settings."""

    def setUp(self):
        self.temp_dir = TemporaryDirectory()
        self.temp_path = Path(self.temp_dir.name)

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_yaml_file(self):
        config_file = self.temp_path / 'settings.yaml'
        config_file.write_text("admin_endpoints: https://node1:9000 https://node2:9000\n"
                               "access_key: admin\nsecret_key: secret\ninfluxdb_url: http://db:8181\n")

        with mock.patch.dict(os.environ, {}, clear=True):
            settings = Settings(config_file=str(config_file))
        self.assertEqual(settings.admin_endpoints, ['https://node1:9000', 'https://node2:9000'])
        self.assertTrue(settings.has_credentials())
        self.assertEqual(settings.region, 'us-east-1')
        self.assertEqual(settings.influxdb_url, 'http://db:8181')

    def test_environment_overrides_file(self):
        config_file = self.temp_path / 'settings.json'
        config_file.write_text('{"admin_endpoints": ["https://node1:9000"], "access_key": "file-admin"}')

        env = {'ADMIN_ENDPOINT': 'https://node5:9000 https://node6:9000', 'ADMIN_ACCESS_KEY': 'env-admin'}
        with mock.patch.dict(os.environ, env, clear=True):
            settings = Settings(config_file=str(config_file))
        self.assertEqual(settings.admin_endpoints, ['https://node5:9000', 'https://node6:9000'])
        self.assertEqual(settings.access_key, 'env-admin')
        self.assertFalse(settings.has_credentials())

    def test_missing_and_broken_files(self):
        broken = self.temp_path / 'broken.yaml'
        broken.write_text("admin_endpoints: [unclosed\n")

        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertEqual(Settings(config_file=str(self.temp_path / 'none.yaml')).admin_endpoints, [])
            with self.assertLogs('clusterinfo.config', level='ERROR'):
                settings = Settings(config_file=str(broken))
        self.assertEqual(settings.admin_endpoints, [])


class TestClusterReporter(unittest.TestCase):
    """Test cases for ClusterReporter."""

    def setUp(self):
        self.temp_dir = TemporaryDirectory()
        self.writer = mock.Mock(spec=Writer)
        self.writer.write.return_value = True

    def tearDown(self):
        self.temp_dir.cleanup()

    def _save_cycle(self, timestamp):
        save_snapshot(self.temp_dir.name, 'storage_info', DEPLOYMENT_ID, sample_storage_info(), timestamp)
        save_snapshot(self.temp_dir.name, 'server_info', DEPLOYMENT_ID, sample_info_message(), timestamp)
        save_snapshot(self.temp_dir.name, 'data_usage_info', DEPLOYMENT_ID, {"bucketsCount": 1}, timestamp)

    def _live_reporter(self, datasources, **overrides):
        config = ReporterConfig(endpoints=['https://node1:9000', 'https://node2:9000'],
                                access_key='admin', secret_key='secret', output='prometheus', **overrides)
        reporter = ClusterReporter(config)
        reporter.datasources = datasources
        reporter.writer = self.writer
        return reporter

    @staticmethod
    def _datasource(documents):
        """DataSource mock answering from documents, or failing for types it does not have"""
        datasource = mock.Mock(spec=DataSource)
        datasource.deployment_info = None
        datasource.current_timestamp.return_value = None

        def collect(snapshot_type, **kwargs):
            if snapshot_type in documents:
                return CollectionResult(snapshot_type, documents[snapshot_type], True)
            return CollectionResult(snapshot_type, None, False, error=ConnectionError("refused"))

        datasource.collect.side_effect = collect
        return datasource

    def _documents(self):
        return {
            SnapshotType.STORAGE_INFO: StorageInfo.from_api_response(sample_storage_info()),
            SnapshotType.DATA_USAGE_INFO: DataUsageInfo.from_api_response({"bucketsCount": 1}),
            SnapshotType.SERVER_INFO: InfoMessage.from_api_response(sample_info_message()),
        }

    def test_replay_run(self):
        self._save_cycle(1200)
        self._save_cycle(1320)
        config = ReporterConfig(use_json_replay=True, from_json=self.temp_dir.name, output='prometheus')
        reporter = ClusterReporter(config)

        self.assertTrue(reporter.initialize())
        self.assertEqual(reporter.discover_deployment(), DEPLOYMENT_ID)
        reporter.writer = self.writer
        reporter.run_continuous()

        self.assertEqual(self.writer.write.call_count, 2)
        measurements, iteration = self.writer.write.call_args.args
        self.assertEqual(iteration, 2)
        self.assertIn(MEASUREMENT_DRIVE, measurements)
        self.writer.close.assert_called_once_with(timeout_seconds=90, force_exit_on_timeout=False)
        self.assertEqual(reporter.get_statistics()['collections_completed'], 2)
        self.assertEqual(reporter.get_statistics()['failed_collections'], 0)

    def test_replayed_records_keep_snapshot_time(self):
        self._save_cycle(1200)
        self._save_cycle(1320)
        config = ReporterConfig(use_json_replay=True, from_json=self.temp_dir.name, output='prometheus')
        reporter = ClusterReporter(config)
        self.assertTrue(reporter.initialize())
        reporter.writer = self.writer
        reporter.run_continuous()

        times = [call.args[0][MEASUREMENT_DRIVE][0]['time'] for call in self.writer.write.call_args_list]
        self.assertEqual(times, [1200, 1320])

    def test_inconsistent_topology_fails_the_cycle(self):
        documents = self._documents()
        broken = sample_storage_info()
        broken["Backend"]["StandardSCParities"] = [1, 1]
        documents[SnapshotType.STORAGE_INFO] = StorageInfo.from_api_response(broken)
        reporter = self._live_reporter([self._datasource(documents)])

        with self.assertLogs('clusterinfo.core.reporter', level='ERROR'):
            self.assertFalse(reporter.run_single_collection())
        self.writer.write.assert_not_called()
        self.assertEqual(reporter.failed_collections, 1)

    def test_replay_initialize_fails_without_snapshots(self):
        config = ReporterConfig(use_json_replay=True, from_json=self.temp_dir.name)
        self.assertFalse(ClusterReporter(config).initialize())

    def test_failover_to_next_endpoint(self):
        failing = self._datasource({})
        working = self._datasource(self._documents())
        reporter = self._live_reporter([failing, working])

        self.assertEqual(reporter.discover_deployment(), DEPLOYMENT_ID)
        self.assertTrue(reporter.run_single_collection())
        measurements = self.writer.write.call_args.args[0]
        self.assertIn(MEASUREMENT_INFO, measurements)

    def test_first_endpoint_answers(self):
        first = self._datasource(self._documents())
        second = self._datasource(self._documents())
        reporter = self._live_reporter([first, second])

        results = reporter.collect_all_data()
        self.assertTrue(all(len(r) == 1 for r in results.values()))
        second.collect.assert_not_called()
        first.collect.assert_any_call(SnapshotType.DATA_USAGE_INFO, capacity=True)

    def test_partial_cycle_is_written_but_counted_failed(self):
        documents = self._documents()
        del documents[SnapshotType.DATA_USAGE_INFO]
        reporter = self._live_reporter([self._datasource(documents)])

        self.assertFalse(reporter.run_single_collection())
        self.writer.write.assert_called_once()
        self.assertEqual(reporter.failed_collections, 1)

    def test_nothing_collected(self):
        reporter = self._live_reporter([self._datasource({})])
        self.assertFalse(reporter.run_single_collection())
        self.writer.write.assert_not_called()
        self.assertIsNone(reporter.discover_deployment())

    def test_save_json(self):
        reporter = self._live_reporter([self._datasource(self._documents())], save_json=self.temp_dir.name)
        self.assertTrue(reporter.run_single_collection())

        kinds = sorted(name.split('_')[0] for name in os.listdir(self.temp_dir.name))
        self.assertEqual(kinds, ['datausageinfo', 'info', 'storageinfo'])

    def test_live_loop_honours_max_iterations(self):
        reporter = self._live_reporter([self._datasource(self._documents())], max_iterations=2)
        with mock.patch('clusterinfo.core.reporter.time.sleep') as sleep:
            reporter.run_continuous()
        self.assertEqual(self.writer.write.call_count, 2)
        sleep.assert_called_once_with(60)


if __name__ == '__main__':
    unittest.main()
