"""Core reporter package initialization."""

from .reporter import ClusterReporter
from .config import ReporterConfig
from .writer_config import WriterConfig

__all__ = ['ClusterReporter', 'ReporterConfig', 'WriterConfig']
