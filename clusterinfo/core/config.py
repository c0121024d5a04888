"""Core configuration classes for the reporter."""

from dataclasses import dataclass
from typing import Dict, Any, Optional, List

from ..config import DEFAULT_ADMIN_REGION

# Allowed collection intervals in seconds
ALLOWED_INTERVALS = [60, 120, 300, 600, 900]


@dataclass
class ReporterConfig:
    """Main configuration for the reporter."""

    # Data source configuration
    use_json_replay: bool = False
    from_json: Optional[str] = None
    deployment_id: Optional[str] = None  # replay filter

    # Live API configuration
    endpoints: Optional[List[str]] = None
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    region: str = DEFAULT_ADMIN_REGION
    tls_ca: Optional[str] = None
    tls_validation: str = 'strict'  # 'strict', 'normal', 'none'

    # Output configuration
    output: str = 'influxdb'  # 'influxdb', 'prometheus', or 'both'
    save_json: Optional[str] = None  # directory for raw snapshots

    # Collection behavior
    interval_time: int = 60
    capacity: bool = True  # ask datausageinfo for capacity figures
    server_metrics: bool = False  # ask info for per-drive API metrics

    # Debugging
    debug: bool = False
    log_level: str = 'INFO'
    logfile: Optional[str] = None

    # Collection control
    max_iterations: int = 0  # 0 = unlimited, >0 = exit after N iterations

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.use_json_replay:
            if not self.from_json:
                raise ValueError("from_json required for JSON replay mode")
        else:
            if not self.endpoints or not self.access_key or not self.secret_key:
                raise ValueError("endpoints, access_key, secret_key required for live API mode")

        if self.tls_validation not in ('strict', 'normal', 'none'):
            raise ValueError(f"tls_validation must be strict, normal or none, got {self.tls_validation}")

        if self.interval_time not in ALLOWED_INTERVALS:
            raise ValueError(f"interval_time must be one of {ALLOWED_INTERVALS}")

        if self.max_iterations < 0:
            raise ValueError("max_iterations must not be negative")

    @classmethod
    def from_args(cls, args, settings=None) -> 'ReporterConfig':
        """Create configuration from command line arguments.

        Values missing on the command line are taken from settings
        (config file and environment) when given.
        """
        def pick(arg_name, settings_name=None, default=None):
            value = getattr(args, arg_name, None)
            if value in (None, [], '') and settings is not None and settings_name:
                value = getattr(settings, settings_name, None)
            return default if value in (None, []) else value

        from_json = getattr(args, 'fromJson', None)
        return cls(
            use_json_replay=from_json is not None,
            from_json=from_json,
            deployment_id=getattr(args, 'deploymentId', None),
            endpoints=pick('endpoint', 'admin_endpoints'),
            access_key=pick('accessKey', 'access_key'),
            secret_key=pick('secretKey', 'secret_key'),
            region=pick('region', 'region', DEFAULT_ADMIN_REGION),
            tls_ca=pick('tlsCa', 'tls_ca'),
            tls_validation=getattr(args, 'tlsValidation', 'strict'),
            output=getattr(args, 'output', 'influxdb'),
            save_json=getattr(args, 'saveJson', None),
            interval_time=getattr(args, 'intervalTime', 60),
            capacity=getattr(args, 'capacity', True),
            server_metrics=getattr(args, 'serverMetrics', False),
            debug=getattr(args, 'debug', False),
            log_level=getattr(args, 'log_level', 'INFO'),
            logfile=getattr(args, 'logfile', None),
            max_iterations=getattr(args, 'maxIterations', 0)
        )

    def datasource_configs(self) -> List[Dict[str, Any]]:
        """One data source configuration per endpoint, or the replay configuration."""
        if self.use_json_replay:
            return [{
                'from_json': self.from_json,
                'deployment_id': self.deployment_id,
            }]
        return [{
            'endpoint': endpoint,
            'tls_ca': self.tls_ca,
            'tls_validation': self.tls_validation,
        } for endpoint in self.endpoints or []]

    def to_dict(self) -> Dict[str, Any]:
        """Configuration as a dictionary, credentials redacted."""
        return {
            'use_json_replay': self.use_json_replay,
            'from_json': self.from_json,
            'deployment_id': self.deployment_id,
            'endpoints': self.endpoints,
            'access_key': self.access_key,
            'secret_key': '[REDACTED]' if self.secret_key else None,
            'region': self.region,
            'tls_ca': self.tls_ca,
            'tls_validation': self.tls_validation,
            'output': self.output,
            'save_json': self.save_json,
            'interval_time': self.interval_time,
            'capacity': self.capacity,
            'server_metrics': self.server_metrics,
            'logfile': self.logfile,
            'max_iterations': self.max_iterations,
        }
