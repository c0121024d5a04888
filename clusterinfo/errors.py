class ClusterInfoError(Exception):
    pass


class SnapshotDecodeError(ClusterInfoError):
    """Raised when an admin document is malformed or has the wrong shape"""

    def __init__(self, message: str, source: str = ''):
        self.source = source
        super().__init__(f"{source}: {message}" if source else message)


class TopologyError(ClusterInfoError, ValueError):
    """Raised when pool/erasure-set data contradicts itself"""
    pass


class AdminAPIError(ClusterInfoError):
    """Non-success response from the admin API"""

    def __init__(self, status_code: int, code: str = '', message: str = '', request_id: str = ''):
        self.status_code = status_code
        self.code = code
        self.message = message
        self.request_id = request_id
        detail = message or code or 'no error details in response'
        super().__init__(f"admin API returned HTTP {status_code}: {detail}")
