"""
Admin API endpoint definitions

Paths are relative to the admin prefix and shared by the live data source and
the snapshot writer so both agree on naming.
"""

ADMIN_API_PREFIX = '/minio/admin/v3'

# Endpoint key -> path under ADMIN_API_PREFIX
API_ENDPOINTS = {
    'storage_info': 'storageinfo',
    'data_usage_info': 'datausageinfo',
    'server_info': 'info',
}

# Endpoint key -> snapshot file prefix, <kind>_<deployment_id>_<timestamp>.json
SNAPSHOT_KINDS = {
    'storage_info': 'storageinfo',
    'data_usage_info': 'datausageinfo',
    'server_info': 'info',
}


def get_endpoint_path(endpoint_key: str) -> str:
    """Full request path for an endpoint key.

    Raises:
        KeyError: the endpoint key is unknown
    """
    return f"{ADMIN_API_PREFIX}/{API_ENDPOINTS[endpoint_key]}"


def get_snapshot_kind(endpoint_key: str) -> str:
    return SNAPSHOT_KINDS.get(endpoint_key, endpoint_key)
