"""
Tests for the measurement writers.
"""
import unittest
from unittest import mock

from prometheus_client import CollectorRegistry

from .base import Writer
from .factory import WriterFactory
from .influxdb_writer import InfluxDBWriter, record_to_point
from .multi_writer import MultiWriter
from .prometheus_writer import PrometheusWriter
from ..core.writer_config import WriterConfig

DEPLOYMENT_ID = "4c5d2e8a-0f51-4b0e-9d7a-2f3c1f0c7a11"


def drive_record(path, total_space, state='ok'):
    return {
        'tags': {'deployment_id': DEPLOYMENT_ID, 'endpoint': 'http://node1:9000', 'path': path, 'state': state},
        'fields': {'total_space': total_space, 'healing': 0, 'online': 1},
        'time': 1757410112,
    }


class TestPrometheusWriter(unittest.TestCase):
    """Test cases for PrometheusWriter."""

    def setUp(self):
        self.registry = CollectorRegistry()
        self.writer = PrometheusWriter({'start_server': False, 'registry': self.registry})

    def _labels(self, path, state='ok'):
        return {'deployment_id': DEPLOYMENT_ID, 'endpoint': 'http://node1:9000', 'path': path, 'state': state}

    def test_write_sets_gauges(self):
        data = {'cluster_drive': [drive_record('/data1', 4000), drive_record('/data2', 8000)]}

        self.assertTrue(self.writer.write(data))
        self.assertEqual(self.registry.get_sample_value('cluster_drive_total_space', self._labels('/data1')), 4000.0)
        self.assertEqual(self.registry.get_sample_value('cluster_drive_total_space', self._labels('/data2')), 8000.0)
        self.assertIn('cluster_drive_online', self.writer.render())

    def test_vanished_series_are_cleared(self):
        self.writer.write({'cluster_drive': [drive_record('/data1', 4000), drive_record('/data2', 8000)]})
        self.writer.write({'cluster_drive': [drive_record('/data1', 4000)]})

        self.assertIsNone(self.registry.get_sample_value('cluster_drive_total_space', self._labels('/data2')))
        self.assertEqual(self.registry.get_sample_value('cluster_drive_total_space', self._labels('/data1')), 4000.0)

    def test_skips_non_numeric_fields(self):
        record = {'tags': {'deployment_id': DEPLOYMENT_ID}, 'fields': {'ok': True, 'name': 'x', 'nan': float('nan'),
                                                                       'buckets': 3}}
        self.writer.write({'cluster_info': [record]})

        self.assertEqual(self.registry.get_sample_value('cluster_info_buckets', {'deployment_id': DEPLOYMENT_ID}), 3.0)
        self.assertNotIn('cluster_info_ok', self.writer.dynamic_metrics)
        self.assertNotIn('cluster_info_name', self.writer.dynamic_metrics)
        self.assertNotIn('cluster_info_nan', self.writer.dynamic_metrics)

    def test_changed_label_set_is_skipped(self):
        self.writer.write({'cluster_usage': [{'tags': {'deployment_id': DEPLOYMENT_ID}, 'fields': {'objects': 1}}]})
        with self.assertLogs('clusterinfo.writer.prometheus_writer', level='ERROR'):
            self.writer.write({'cluster_usage': [{'tags': {'deployment_id': DEPLOYMENT_ID, 'extra': 'x'},
                                                  'fields': {'objects': 2}}]})

    def test_metric_names(self):
        self.assertEqual(self.writer._sanitize_metric_name('cluster_drive', 'Read-Latency'), 'cluster_drive_read_latency')
        self.assertEqual(self.writer._sanitize_metric_name('9x', 'y'), 'metric_9x_y')

    def test_server_start_failure(self):
        writer = PrometheusWriter({'registry': CollectorRegistry()})
        with mock.patch('clusterinfo.writer.prometheus_writer.start_http_server', side_effect=OSError("in use")):
            self.assertFalse(writer.write({}))


class TestInfluxDBWriter(unittest.TestCase):
    """Test cases for InfluxDBWriter and point conversion."""

    def test_record_to_point(self):
        record = drive_record('/data1', 4000)
        record['tags']['pool'] = ''
        line = record_to_point('cluster_drive', record).to_line_protocol()

        self.assertTrue(line.startswith('cluster_drive,'))
        self.assertIn('path=/data1', line)
        self.assertNotIn('pool=', line)
        self.assertIn('total_space=4000', line)
        self.assertNotIn('total_space=4000i', line)
        self.assertTrue(line.endswith(' 1757410112'))

    def test_write_with_client(self):
        client = mock.Mock()
        writer = InfluxDBWriter({'client': client, 'influxdb_url': 'http://db:8181', 'influxdb_token': 't',
                                 'influxdb_database': 'cluster', 'deployment_id': DEPLOYMENT_ID})

        data = {'cluster_drive': [drive_record('/data1', 4000), drive_record('/data2', 8000)], 'cluster_tier': []}
        self.assertTrue(writer.write(data))
        self.assertEqual(client.write.call_count, 2)

        writer.close(timeout_seconds=5)
        client.close.assert_called_once_with()
        self.assertIsNone(writer.client)
        self.assertFalse(writer.write(data))

    def test_malformed_records_are_skipped(self):
        client = mock.Mock()
        writer = InfluxDBWriter({'client': client})
        writer.write({'cluster_drive': ['not a record', {'tags': {}}, drive_record('/data1', 1)]})
        self.assertEqual(client.write.call_count, 1)


class TestMultiWriter(unittest.TestCase):
    """Test cases for MultiWriter."""

    def test_all_writers_receive_data(self):
        first = mock.Mock(spec=Writer)
        first.write.return_value = True
        second = mock.Mock(spec=Writer)
        second.write.return_value = True

        writer = MultiWriter([first, second])
        self.assertTrue(writer.write({'cluster_usage': []}, 3))
        first.write.assert_called_once_with({'cluster_usage': []}, 3)
        second.write.assert_called_once_with({'cluster_usage': []}, 3)

        writer.close(timeout_seconds=10)
        second.close.assert_called_once_with(timeout_seconds=10, force_exit_on_timeout=False)

    def test_one_failure_fails_the_write(self):
        first = mock.Mock(spec=Writer)
        first.write.return_value = False
        second = mock.Mock(spec=Writer)
        second.write.return_value = True

        self.assertFalse(MultiWriter([first, second]).write({}))
        second.write.assert_called_once()


class TestWriterFactory(unittest.TestCase):
    """Test cases for WriterFactory."""

    def test_prometheus(self):
        writer = WriterFactory.create_writer_from_config(WriterConfig(output_format='prometheus', prometheus_port=9100))
        self.assertIsInstance(writer, PrometheusWriter)
        self.assertEqual(writer.port, 9100)

    def test_both(self):
        config = WriterConfig(output_format='both', influxdb_url='http://db:8181', influxdb_token='t',
                              influxdb_database='cluster')
        with mock.patch('clusterinfo.writer.factory.InfluxDBWriter') as influx:
            writer = WriterFactory.create_writer_from_config(config)
        self.assertIsInstance(writer, MultiWriter)
        influx.assert_called_once_with(config.to_dict())
        self.assertIsInstance(writer.writers[1], PrometheusWriter)

    def test_unknown_output(self):
        config = WriterConfig(output_format='prometheus')
        config.output_format = 'csv'
        with self.assertRaises(ValueError):
            WriterFactory.create_writer_from_config(config)


if __name__ == '__main__':
    unittest.main()
