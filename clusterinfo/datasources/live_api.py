"""Live admin API DataSource implementation.

Collects documents directly from a cluster's admin endpoints.
"""

import logging
import os
from typing import Dict, Any, Optional

import requests
import urllib3

from .base import DataSource, DeploymentInfo
from ..config.api_endpoints import get_endpoint_path
from ..errors import AdminAPIError, ClusterInfoError, SnapshotDecodeError
from ..read.json_reader import JsonReader
from ..schema.models import StorageInfo, DataUsageInfo, InfoMessage, ServerInfoOpts

DEFAULT_TIMEOUT = 30


def _flag(value: bool) -> str:
    return 'true' if value else 'false'


class AdminAPIDataSource(DataSource):
    """DataSource implementation for the live admin API.

    This implementation handles:
    - requests session setup with the configured TLS mode
    - query construction for each admin document
    - turning non-success responses into AdminAPIError

    Authentication is whatever requests.auth.AuthBase the caller passes as
    config['auth']. Transport errors from requests are not caught here.
    """

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.logger = logging.getLogger(__name__)

        self.endpoint: Optional[str] = config.get('endpoint')
        self.auth = config.get('auth')
        self.tls_ca = config.get('tls_ca')
        self.tls_validation = config.get('tls_validation', 'strict')
        self.timeout = config.get('timeout', DEFAULT_TIMEOUT)

        # Session state
        self.session: Optional[requests.Session] = config.get('session')
        self._owns_session = self.session is None

    @property
    def source_name(self) -> str:
        return self.endpoint or 'live_api'

    def initialize(self) -> bool:
        """Prepare the HTTP session.

        Returns:
            True if initialization successful, False otherwise
        """
        if not self.endpoint:
            self.logger.error("Admin endpoint required for live API mode")
            return False

        if '://' not in self.endpoint:
            self.endpoint = f"https://{self.endpoint}"
        self.endpoint = self.endpoint.rstrip('/')

        if self.session is None:
            self.session = requests.Session()

        plaintext = self.endpoint.startswith('http://')
        if self.tls_validation == 'none':
            self.session.verify = False
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
            self.logger.warning("TLS validation is DISABLED for the admin API. This is insecure.")
        elif self.tls_validation == 'normal':
            self.session.verify = self.tls_ca if self.tls_ca else True
            if plaintext:
                self.logger.warning(f"Admin endpoint {self.endpoint} is not using TLS")
        else:
            # strict: TLS only, and a configured CA must be readable
            if plaintext:
                self.logger.error(f"Strict TLS validation refuses plain HTTP endpoint {self.endpoint}")
                return False
            if self.tls_ca and not os.path.isfile(self.tls_ca):
                self.logger.error(f"TLS CA certificate not found: {self.tls_ca}")
                return False
            self.session.verify = self.tls_ca if self.tls_ca else True

        if self.auth is None:
            self.logger.warning(f"No credentials configured, requests to {self.endpoint} will be unsigned")
        self.session.auth = self.auth

        self.logger.info(f"Using admin endpoint {self.endpoint}")
        return True

    def _api_error(self, response: requests.Response) -> AdminAPIError:
        code = message = request_id = ''
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict):
            code = str(body.get('Code', ''))
            message = str(body.get('Message', ''))
            request_id = str(body.get('RequestId', ''))
        else:
            message = (response.text or '')[:200] or (response.reason or '')

        return AdminAPIError(response.status_code, code=code, message=message, request_id=request_id)

    def _call_api(self, endpoint_key: str, params: Optional[Dict[str, str]] = None) -> Any:
        """Make an API call and return the parsed JSON body.

        Raises:
            AdminAPIError: the server answered with a non-200 status
            SnapshotDecodeError: the body is not JSON
            requests.RequestException: transport failure
        """
        if not self.session or not self.endpoint:
            raise ClusterInfoError("admin API data source is not initialized")

        url = f"{self.endpoint}{get_endpoint_path(endpoint_key)}"
        self.logger.debug(f"GET {url} params={params}")
        response = self.session.get(url, params=params, timeout=self.timeout)

        if response.status_code != 200:
            error = self._api_error(response)
            self.logger.error(f"{endpoint_key} request failed: {error}")
            raise error

        try:
            return response.json()
        except ValueError as e:
            raise SnapshotDecodeError(f"response is not JSON: {e}", source=url) from e

    def fetch_storage_info(self) -> StorageInfo:
        data = self._call_api('storage_info')
        storage_info = JsonReader.decode(data, StorageInfo, source=f"{self.endpoint} storageinfo")
        self.logger.debug(f"Collected storage info: {len(storage_info.disks)} drives")
        return storage_info

    def fetch_data_usage_info(self, capacity: bool = True) -> DataUsageInfo:
        data = self._call_api('data_usage_info', {'capacity': _flag(capacity)})
        usage = JsonReader.decode(data, DataUsageInfo, source=f"{self.endpoint} datausageinfo")
        self.logger.debug(f"Collected data usage: {usage.bucketsCount} buckets")
        return usage

    def fetch_server_info(self, opts: Optional[ServerInfoOpts] = None) -> InfoMessage:
        opts = opts or ServerInfoOpts()
        data = self._call_api('server_info', {'metrics': _flag(opts.metrics)})
        info = JsonReader.decode(data, InfoMessage, source=f"{self.endpoint} info")

        if info.deploymentID:
            if not self._deployment_info or self._deployment_info.deployment_id != info.deploymentID:
                self.logger.info(f"Connected to deployment {info.deploymentID} via {self.endpoint}")
            self._deployment_info = DeploymentInfo(deployment_id=info.deploymentID, endpoint=self.endpoint)
        return info

    def cleanup(self) -> None:
        if self.session is not None and self._owns_session:
            self.session.close()
            self.logger.debug("Closed admin API session")
        self.session = None
