"""
Base writer interface for the cluster info reporter.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Any, List

# Initialize logger
LOG = logging.getLogger(__name__)


class Writer(ABC):
    """
    Base class for all writers.

    Writers receive measurement name -> list of records, each record shaped
    {'tags': {...}, 'fields': {...}, 'time': <unix seconds>}.
    """

    @staticmethod
    def iter_records(measurement_data: Any) -> List[Dict[str, Any]]:
        """Records of one measurement, skipping anything that is not a record dict"""
        if isinstance(measurement_data, dict):
            measurement_data = [measurement_data]
        records = []
        for record in measurement_data or []:
            if isinstance(record, dict) and 'fields' in record:
                records.append(record)
            else:
                LOG.warning(f"Skipping malformed record of type {type(record).__name__}")
        return records

    @abstractmethod
    def write(self, data: Dict[str, Any], loop_iteration: int = 1) -> bool:
        """
        Write data to the destination.

        Args:
            data: Dictionary of measurement name -> records
            loop_iteration: Current iteration number

        Returns:
            True if write was successful, False otherwise
        """
        pass

    def close(self, timeout_seconds: int = 90, force_exit_on_timeout: bool = False) -> None:
        """
        Optional method to close the writer and clean up resources.
        Default implementation does nothing - override in subclasses that need cleanup.
        """
        pass
