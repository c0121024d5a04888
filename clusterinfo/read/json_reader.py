"""
JSON reader for saved admin API snapshots.

Snapshot files follow the naming convention written by the JSON replay
datasource:
    <kind>_<deployment_id>_<timestamp>.json

Where:
    - kind: storageinfo, datausageinfo or info
    - deployment_id: deploymentID of the cluster the snapshot came from
    - timestamp: Unix timestamp (seconds since epoch)

Example:
    storageinfo_4c5d2e8a-0f51-4b0e-9d7a-2f3c1f0c7a11_1757410112.json

A file may hold the bare API document or the wrapped form
{"deployment_id": "...", "data": {...}}.
"""
import json
import logging
from pathlib import Path
import datetime
from typing import Dict, Any, Optional, Union, Type, TypeVar

from ..errors import SnapshotDecodeError
from ..schema.models import StorageInfo, DataUsageInfo, InfoMessage

logger = logging.getLogger(__name__)

T = TypeVar('T')


class JsonReader:
    """Reads snapshot files and decodes them into models."""

    @staticmethod
    def extract_timestamp_from_filename(filename: Union[str, Path]) -> Optional[datetime.datetime]:
        """
        Extract the timestamp from a <kind>_<deployment_id>_<timestamp>.json name.

        Returns:
            A timezone-aware datetime, or None if the name does not carry one
        """
        stem = Path(filename).stem
        try:
            parts = stem.split('_')
            if len(parts) >= 3:
                return datetime.datetime.fromtimestamp(int(parts[-1]), tz=datetime.timezone.utc)
        except (ValueError, OverflowError, OSError):
            pass
        return None

    @staticmethod
    def unwrap(content: Any) -> Any:
        """Strip the {"deployment_id", "data"} wrapper if present"""
        if isinstance(content, dict) and 'data' in content and 'deployment_id' in content:
            return content['data']
        return content

    @staticmethod
    def read_file(filepath: Union[str, Path]) -> Dict[str, Any]:
        """Read a snapshot file and return the unwrapped document.

        Raises:
            FileNotFoundError: the file does not exist
            SnapshotDecodeError: the file is not valid JSON
        """
        filepath = Path(filepath)
        try:
            with open(filepath, 'r', encoding='utf-8') as file:
                content = json.load(file)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Error parsing JSON from {filepath}: {e}")
            raise SnapshotDecodeError(f"invalid JSON: {e}", source=str(filepath)) from e

        if isinstance(content, dict) and 'data' in content and 'deployment_id' in content:
            logger.debug(f"Unwrapping snapshot wrapper from {filepath.name}")
        return JsonReader.unwrap(content)

    @staticmethod
    def decode(data: Any, model_class: Type[T], source: str = '') -> T:
        """Decode an already parsed document into model_class.

        Raises:
            SnapshotDecodeError: the document does not have the model's shape
        """
        try:
            return model_class.from_api_response(data)  # type: ignore
        except (TypeError, ValueError, KeyError) as e:
            logger.error(f"Error converting data to {model_class.__name__}: {e}")
            raise SnapshotDecodeError(f"cannot decode {model_class.__name__}: {e}", source=source) from e

    @staticmethod
    def read_model_from_file(filepath: Union[str, Path], model_class: Type[T]) -> T:
        """Read a snapshot file and decode it into model_class."""
        data = JsonReader.read_file(filepath)
        return JsonReader.decode(data, model_class, source=str(filepath))


def read_storage_info(filepath: Union[str, Path]) -> StorageInfo:
    """Read a storage info snapshot."""
    return JsonReader.read_model_from_file(filepath, StorageInfo)


def read_data_usage_info(filepath: Union[str, Path]) -> DataUsageInfo:
    """Read a data usage snapshot."""
    return JsonReader.read_model_from_file(filepath, DataUsageInfo)


def read_server_info(filepath: Union[str, Path]) -> InfoMessage:
    """Read a server info snapshot."""
    return JsonReader.read_model_from_file(filepath, InfoMessage)
