"""Writer module for the cluster info reporter.

Provides writer implementations for different output formats.
"""

from .base import Writer
from .factory import WriterFactory
from .influxdb_writer import InfluxDBWriter, record_to_point
from .prometheus_writer import PrometheusWriter
from .multi_writer import MultiWriter

__all__ = ['Writer', 'WriterFactory', 'InfluxDBWriter', 'record_to_point', 'PrometheusWriter', 'MultiWriter']
