"""
InfluxDB 3 writer for the cluster info reporter.

Converts measurement records into Points with second precision and writes
them through the client's batching write API.
"""

import logging
import os
import threading
import time
from typing import Dict, Any, List, Optional

import requests
from influxdb_client_3 import InfluxDBClient3, Point, WritePrecision, WriteOptions, write_client_options
from influxdb_client_3.exceptions.exceptions import InfluxDBError

from .base import Writer

# Initialize logger
LOG = logging.getLogger(__name__)


class BatchingCallback(object):
    """
    Receives the batching client's per-batch outcomes and keeps counters.

    get_stats() is logged when the writer closes.
    """

    def __init__(self):
        self.started_ns = time.time_ns()
        self.batches_written = 0
        self.batches_failed = 0
        self.batches_retried = 0
        self.last_outcome: Optional[str] = None

    def success(self, conf, data: str):
        self.batches_written += 1
        self.last_outcome = f"ok after {self.batches_written} batches"
        LOG.debug(f"Flushed batch of {len(data)} bytes")

    def error(self, conf, data: str, exception: InfluxDBError):
        self.batches_failed += 1
        self.last_outcome = f"failed: {exception}"
        LOG.error(f"Dropped batch of {len(data)} bytes: {exception}")

    def retry(self, conf, data: str, exception: InfluxDBError):
        self.batches_retried += 1
        LOG.warning(f"Retrying batch of {len(data)} bytes (retry {self.batches_retried}): {exception}")

    def get_stats(self) -> Dict[str, Any]:
        return {
            'written': self.batches_written,
            'failed': self.batches_failed,
            'retried': self.batches_retried,
            'elapsed_ms': (time.time_ns() - self.started_ns) // 1_000_000,
            'last_outcome': self.last_outcome,
        }


def record_to_point(measurement_name: str, record: Dict[str, Any]) -> Point:
    """Build a Point from a {'tags', 'fields', 'time'} record.

    Empty tag values and None fields are left out; the time is in seconds.
    """
    point = Point(measurement_name)

    for tag_key, tag_value in record.get('tags', {}).items():
        if tag_value is not None and str(tag_value) != '':
            point = point.tag(tag_key, _sanitize_tag_value(str(tag_value)))

    for field_key, field_value in record.get('fields', {}).items():
        if field_value is None:
            continue
        if isinstance(field_value, int) and not isinstance(field_value, bool):
            # every numeric field column is a float
            field_value = float(field_value)
        point = point.field(field_key, field_value)

    timestamp = record.get('time')
    if timestamp:
        point = point.time(int(timestamp), WritePrecision.S)
    return point


def _sanitize_tag_value(value: str) -> str:
    """Collapse whitespace in tag values."""
    sanitized = ' '.join(value.split())
    return sanitized or 'unknown'


class InfluxDBWriter(Writer):
    """
    Writer for InfluxDB 3.x.

    Points carry second precision and go through the client's batching write
    API; the database is created when the server does not list it yet.
    """

    def __init__(self, config: Dict[str, Any]):
        self.url = config.get('influxdb_url') or os.getenv('INFLUXDB_URL', 'https://influxdb:8181')
        self.token = config.get('influxdb_token') or os.getenv('INFLUXDB_TOKEN', '')
        self.database = config.get('influxdb_database') or os.getenv('INFLUXDB_DATABASE', 'clusterinfo')
        self.tls_ca = config.get('tls_ca')
        self.deployment_id = config.get('deployment_id')

        self.batch_size = config.get('batch_size', 500)
        self.flush_interval = config.get('flush_interval_ms', 60_000)
        self.batch_callback = BatchingCallback()

        self.client = config.get('client')
        if self.client is None:
            self._initialize_client()

        LOG.info(f"InfluxDBWriter writing deployment {self.deployment_id} to {self.url}/{self.database}")

    def _ca_bundle(self) -> Optional[str]:
        """CA file for the InfluxDB connection, None to use the system trust store"""
        path = self.tls_ca or os.getenv('INFLUXDB3_TLS_CA')
        if path and not os.path.exists(path):
            LOG.warning(f"InfluxDB CA file {path} does not exist, using the system trust store")
            return None
        return path

    def _initialize_client(self):
        write_options = WriteOptions(
            batch_size=self.batch_size,
            flush_interval=self.flush_interval,
            jitter_interval=2_000,
            retry_interval=5_000,
            max_retries=2,
            max_retry_delay=15_000,
            max_close_wait=60_000,
            exponential_base=2
        )
        client_options = write_client_options(
            success_callback=self.batch_callback.success,
            error_callback=self.batch_callback.error,
            retry_callback=self.batch_callback.retry,
            write_options=write_options
        )

        client_kwargs = {
            'host': self.url,
            'database': self.database,
            'token': self.token,
            'enable_gzip': True,
            'write_client_options': client_options,
            'verify_ssl': True,
            'timeout': 60_000,
        }
        ca_bundle = self._ca_bundle()
        if ca_bundle:
            LOG.info(f"Verifying InfluxDB with CA file {ca_bundle}")
            client_kwargs['ssl_ca_cert'] = ca_bundle

        self.client = InfluxDBClient3(**client_kwargs)
        self._ensure_database_exists()

    def _list_databases(self, headers: Dict[str, str], verify) -> Optional[List[str]]:
        response = requests.get(f"{self.url}/api/v3/configure/database", params={'format': 'json'},
                                headers=headers, timeout=10, verify=verify)
        if response.status_code != 200:
            LOG.warning(f"Listing databases on {self.url} returned HTTP {response.status_code}")
            return None

        listed = response.json()
        if isinstance(listed, dict):
            return list(listed.get('databases', []))
        # [{"iox::database": "name"}, ...]
        return [entry.get("iox::database") if isinstance(entry, dict) else entry for entry in listed or []]

    def _ensure_database_exists(self):
        """Create the target database unless the server already lists it."""
        headers = {'Authorization': f'Bearer {self.token}', 'Accept': 'application/json'}
        verify = self._ca_bundle() or True

        try:
            databases = self._list_databases(headers, verify)
            if databases is None or self.database in databases:
                return

            LOG.info(f"Creating database '{self.database}' on {self.url}")
            response = requests.post(f"{self.url}/api/v3/configure/database", json={"db": self.database},
                                     headers=headers, timeout=10, verify=verify)
            if response.status_code not in (200, 201, 204):
                LOG.error(f"Creating database '{self.database}' returned HTTP {response.status_code}")
        except (requests.RequestException, ValueError) as e:
            LOG.warning(f"Could not check database '{self.database}', leaving it to the first write: {e}")

    def convert_to_points(self, measurement_name: str, data: Any) -> List[Point]:
        return [record_to_point(measurement_name, record) for record in self.iter_records(data)]

    def write(self, measurements: Dict[str, Any], loop_iteration: int = 1) -> bool:
        """
        Hand every record to the batching client.

        Returns:
            True if the client accepted every point, False otherwise
        """
        if not self.client:
            LOG.error("InfluxDB writer is closed")
            return False

        submitted = 0
        rejected = 0
        for measurement_name, measurement_data in measurements.items():
            for point in self.convert_to_points(measurement_name, measurement_data):
                try:
                    self.client.write(record=point)
                    submitted += 1
                except InfluxDBError as e:
                    LOG.error(f"InfluxDB rejected a {measurement_name} point: {e}")
                    rejected += 1

        LOG.info(f"Iteration {loop_iteration}: submitted {submitted} points across "
                 f"{len(measurements)} measurements, {rejected} rejected")
        return rejected == 0

    def get_batch_stats(self) -> Dict[str, Any]:
        return self.batch_callback.get_stats()

    def close(self, timeout_seconds=90, force_exit_on_timeout=False):
        """Flush pending batches and close the client, waiting at most timeout_seconds."""
        if not self.client:
            return

        client, self.client = self.client, None
        errors: List[Exception] = []

        def _close():
            try:
                client.close()
            except Exception as e:
                errors.append(e)

        closer = threading.Thread(target=_close, name='influxdb-close', daemon=True)
        closer.start()
        closer.join(timeout_seconds)

        if closer.is_alive():
            LOG.warning(f"InfluxDB close still running after {timeout_seconds}s, unflushed points may be lost")
            if force_exit_on_timeout:
                raise SystemExit(1)
        elif errors:
            LOG.warning(f"InfluxDB close raised: {errors[0]}")
        else:
            LOG.info(f"InfluxDB writer closed, batches: {self.get_batch_stats()}")
