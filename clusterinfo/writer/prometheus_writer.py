"""
Prometheus exporter writer for the cluster info reporter.
Generates one gauge per measurement field, labelled with the record tags.
"""

import logging
import re
import threading
from typing import Dict, Any, List, Optional
from prometheus_client import Gauge, CollectorRegistry, start_http_server, generate_latest

from .base import Writer

# Initialize logger
LOG = logging.getLogger(__name__)

DEFAULT_PROMETHEUS_PORT = 8000


class PrometheusWriter(Writer):
    """
    Prometheus writer that creates gauges on demand from measurement records.

    Series of a measurement are cleared before each write so drives, buckets
    or servers that disappeared stop being exported.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        config = config or {}

        self.port = config.get('prometheus_port', DEFAULT_PROMETHEUS_PORT)
        self.start_server = config.get('start_server', True)

        # Create separate registry for this writer
        self.prometheus_registry = config.get('registry') or CollectorRegistry()

        # Metrics created on demand, keyed by metric name
        self.dynamic_metrics: Dict[str, Gauge] = {}
        self.metric_labels: Dict[str, List[str]] = {}

        # Server management
        self.server_lock = threading.Lock()
        self.server_started = False

        LOG.info("PrometheusWriter initialized with dynamic metric generation")

    def _sanitize_label_value(self, value: Any) -> str:
        """Sanitize label values to avoid Prometheus metric issues."""
        if value is None:
            return 'unknown'
        value_str = str(value).strip()
        if not value_str:
            return 'unknown'
        return value_str.replace('\n', '_').replace('\r', '_').replace('"', '_')

    def _sanitize_metric_name(self, measurement_name: str, field_name: str) -> str:
        """Create a valid Prometheus metric name from measurement and field names."""
        metric_name = f"{measurement_name}_{field_name}".lower()
        metric_name = re.sub(r'[^a-z0-9_]', '_', metric_name)
        metric_name = re.sub(r'_{2,}', '_', metric_name).strip('_')

        # Ensure it starts with a letter
        if metric_name[0].isdigit():
            metric_name = f"metric_{metric_name}"
        return metric_name

    def _get_metric_help_text(self, measurement_name: str, field_name: str) -> str:
        base_name = measurement_name.replace('cluster_', '').replace('_', ' ').title()
        return f"{base_name} {field_name.replace('_', ' ')}"

    def _get_or_create_metric(self, measurement_name: str, field_name: str,
                              label_names: List[str]) -> Optional[Gauge]:
        metric_name = self._sanitize_metric_name(measurement_name, field_name)

        metric = self.dynamic_metrics.get(metric_name)
        if metric is None:
            metric = Gauge(
                metric_name,
                self._get_metric_help_text(measurement_name, field_name),
                label_names,
                registry=self.prometheus_registry
            )
            self.dynamic_metrics[metric_name] = metric
            self.metric_labels[metric_name] = label_names
            LOG.debug(f"Created new metric: {metric_name} with labels: {label_names}")
        elif self.metric_labels[metric_name] != label_names:
            LOG.error(f"Label set for {metric_name} changed from {self.metric_labels[metric_name]} to {label_names}, skipping")
            return None

        return metric

    def _write_measurement(self, measurement_name: str, records: List[Dict[str, Any]]) -> int:
        prefix = f"{self._sanitize_metric_name(measurement_name, '')}_"
        for metric_name, metric in self.dynamic_metrics.items():
            if metric_name.startswith(prefix) and self.metric_labels[metric_name]:
                metric.clear()

        values_set = 0
        for record in records:
            tags = record.get('tags', {})
            label_names = sorted(tags)
            labels = {name: self._sanitize_label_value(tags[name]) for name in label_names}

            for field_name, field_value in record['fields'].items():
                # bool is an int subclass but not a gauge value
                if isinstance(field_value, bool) or not isinstance(field_value, (int, float)):
                    continue
                if isinstance(field_value, float) and field_value != field_value:  # NaN check
                    continue

                metric = self._get_or_create_metric(measurement_name, field_name, label_names)
                if metric is None:
                    continue
                if label_names:
                    metric.labels(**labels).set(float(field_value))
                else:
                    metric.set(float(field_value))
                values_set += 1
        return values_set

    def _start_prometheus_server(self):
        """Start the Prometheus HTTP server if not already started."""
        with self.server_lock:
            if not self.server_started:
                start_http_server(self.port, registry=self.prometheus_registry)
                self.server_started = True
                LOG.info(f"Prometheus metrics server started on port {self.port}")

    def write(self, data: Dict[str, Any], loop_iteration: int = 1) -> bool:
        """
        Update gauges from the measurement records.

        Returns:
            bool: True if successful, False otherwise
        """
        if self.start_server and not self.server_started:
            try:
                self._start_prometheus_server()
            except OSError as e:
                LOG.error(f"Failed to start Prometheus server on port {self.port}: {e}")
                return False

        LOG.info(f"PrometheusWriter processing {len(data)} measurement types")

        values_set = 0
        for measurement_name, measurement_data in data.items():
            records = self.iter_records(measurement_data)
            LOG.debug(f"Processing {measurement_name}: {len(records)} records")
            values_set += self._write_measurement(measurement_name, records)

        LOG.info(f"Set {values_set} values across {len(self.dynamic_metrics)} metrics (iteration {loop_iteration})")
        return True

    def render(self) -> str:
        """Current metrics in the Prometheus text exposition format"""
        return generate_latest(self.prometheus_registry).decode('utf-8')

    def close(self, timeout_seconds: int = 90, force_exit_on_timeout: bool = False) -> None:
        # the HTTP server runs in a daemon thread and goes away with the process
        LOG.info("PrometheusWriter closed")
