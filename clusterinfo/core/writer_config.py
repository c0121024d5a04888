"""Writer configuration abstraction.

Separates writer-specific configuration from the main reporter config.
"""

from dataclasses import dataclass
from typing import Optional, Dict, Any

from ..config import Settings
from ..writer.prometheus_writer import DEFAULT_PROMETHEUS_PORT


@dataclass
class WriterConfig:
    """Configuration specific to output writers."""

    output_format: str = 'influxdb'  # 'influxdb', 'prometheus', 'both'

    # InfluxDB-specific configuration (only populated if needed)
    influxdb_url: Optional[str] = None
    influxdb_token: Optional[str] = None
    influxdb_database: Optional[str] = None

    # TLS configuration (for InfluxDB strict validation)
    tls_ca: Optional[str] = None

    prometheus_port: int = DEFAULT_PROMETHEUS_PORT

    # Deployment identification (discovered by the reporter)
    deployment_id: str = 'unknown'

    def __post_init__(self):
        """Validate writer configuration after initialization."""
        if self.output_format not in ('influxdb', 'prometheus', 'both'):
            raise ValueError(f"Unsupported output format: {self.output_format}")

        if self.output_format in ['influxdb', 'both']:
            required_fields = ['influxdb_url', 'influxdb_token', 'influxdb_database']
            for field in required_fields:
                if not getattr(self, field):
                    raise ValueError(f"{field} required for InfluxDB output (output_format={self.output_format})")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for writer initialization."""
        config: Dict[str, Any] = {
            'output_format': self.output_format,
            'deployment_id': self.deployment_id,
        }

        if self.output_format in ['influxdb', 'both']:
            config.update({
                'influxdb_url': self.influxdb_url,
                'influxdb_token': self.influxdb_token,
                'influxdb_database': self.influxdb_database,
                'tls_ca': self.tls_ca,
            })

        if self.output_format in ['prometheus', 'both']:
            config['prometheus_port'] = self.prometheus_port

        return config

    @classmethod
    def from_args(cls, args, deployment_id: str = 'unknown',
                  settings: Optional[Settings] = None) -> 'WriterConfig':
        """Create WriterConfig from command line arguments, falling back to settings."""
        def pick(arg_name, settings_name):
            value = getattr(args, arg_name, None)
            if not value and settings is not None:
                value = getattr(settings, settings_name, None)
            return value

        return cls(
            output_format=getattr(args, 'output', 'influxdb'),
            influxdb_url=pick('influxdbUrl', 'influxdb_url'),
            influxdb_token=pick('influxdbToken', 'influxdb_token'),
            influxdb_database=pick('influxdbDatabase', 'influxdb_database'),
            tls_ca=pick('tlsCa', 'tls_ca'),
            prometheus_port=getattr(args, 'prometheus_port', DEFAULT_PROMETHEUS_PORT),
            deployment_id=deployment_id
        )
