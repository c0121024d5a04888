"""
Configuration management for the cluster info reporter.
"""

import os
import yaml
import json
from typing import List, Optional
import logging

# Initialize logger
LOG = logging.getLogger(__name__)

# Region used to sign admin requests when none is configured
DEFAULT_ADMIN_REGION = "us-east-1"

# Scalar setting -> environment variable overriding it
ENV_VARIABLES = {
    'access_key': 'ADMIN_ACCESS_KEY',
    'secret_key': 'ADMIN_SECRET_KEY',
    'region': 'ADMIN_REGION',
    'influxdb_url': 'INFLUXDB_URL',
    'influxdb_database': 'INFLUXDB_DATABASE',
    'influxdb_token': 'INFLUXDB_TOKEN',
    'tls_ca': 'TLS_CA',
}


class Settings:
    """
    Settings shared by the reporter and its writers.

    A YAML or JSON file is read first, then environment variables override
    whatever they set. Command line flags take precedence over both; that
    happens in ReporterConfig.from_args and WriterConfig.from_args.
    """

    def __init__(self, config_file: Optional[str] = None, from_env: bool = True):
        self.admin_endpoints: List[str] = []
        self.access_key: Optional[str] = None
        self.secret_key: Optional[str] = None
        self.region: str = DEFAULT_ADMIN_REGION
        self.influxdb_url: Optional[str] = None
        self.influxdb_database: Optional[str] = None
        self.influxdb_token: Optional[str] = None
        self.tls_ca: Optional[str] = None

        if config_file:
            self._load_from_file(config_file)

        if from_env:
            self._load_from_env()

    @staticmethod
    def _parse_file(config_file: str) -> Optional[dict]:
        suffix = os.path.splitext(config_file)[1].lower()
        with open(config_file, 'r', encoding='utf-8') as f:
            if suffix in ('.yaml', '.yml'):
                return yaml.safe_load(f) or {}
            if suffix == '.json':
                return json.load(f) or {}
        LOG.warning(f"Ignoring config file {config_file}: expected .yaml, .yml or .json")
        return None

    def _load_from_file(self, config_file: str) -> None:
        if not os.path.exists(config_file):
            LOG.warning(f"Config file {config_file} does not exist, using environment and defaults")
            return

        try:
            config = self._parse_file(config_file)
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            LOG.error(f"Could not read config file {config_file}: {e}")
            return
        if config is None:
            return

        endpoints = config.get('admin_endpoints', [])
        if isinstance(endpoints, str):
            endpoints = endpoints.split()
        self.admin_endpoints = list(endpoints)

        for name in ENV_VARIABLES:
            if config.get(name):
                setattr(self, name, config[name])

        LOG.info(f"Loaded settings from {config_file}")

    def _load_from_env(self) -> None:
        # ADMIN_ENDPOINT="https://node1:9000 https://node2:9000"
        if os.getenv('ADMIN_ENDPOINT'):
            self.admin_endpoints = os.getenv('ADMIN_ENDPOINT', '').split()

        for name, variable in ENV_VARIABLES.items():
            value = os.getenv(variable)
            if value:
                setattr(self, name, value)

    def has_credentials(self) -> bool:
        return bool(self.access_key and self.secret_key)
