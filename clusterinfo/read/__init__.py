"""
Snapshot file reading.
"""
from .json_reader import JsonReader, read_storage_info, read_data_usage_info, read_server_info
from .batched_json_reader import BatchedJsonReader, parse_snapshot_name

__all__ = [
    'JsonReader',
    'BatchedJsonReader',
    'parse_snapshot_name',
    'read_storage_info',
    'read_data_usage_info',
    'read_server_info'
]
