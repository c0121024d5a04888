"""Command line entry point for the cluster info reporter."""

import argparse
import sys
import logging
from typing import Optional

from .config import Settings
from .core.config import ReporterConfig, ALLOWED_INTERVALS
from .core.logging_config import LoggingConfigurator
from .core.reporter import ClusterReporter
from .core.writer_config import WriterConfig
from .datasources.auth import AdminSigV4Auth
from .writer.prometheus_writer import DEFAULT_PROMETHEUS_PORT


def create_argument_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""

    parser = argparse.ArgumentParser(
        description='Erasure-coded object storage cluster info reporter',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Live collection to InfluxDB
  cluster-info --endpoint https://node1:9000 --accessKey admin --secretKey secret \\
               --influxdbUrl http://db.org.co:8181 --influxdbToken mytoken --influxdbDatabase cluster

  # Live collection exposed to Prometheus, saving raw snapshots
  cluster-info --endpoint https://node1:9000 https://node2:9000 --output prometheus --saveJson ./snapshots

  # Snapshot replay
  cluster-info --fromJson ./snapshots --deploymentId 4c5d2e8a-0f51-4b0e-9d7a-2f3c1f0c7a11 --output prometheus
        """
    )

    parser.add_argument('--config', type=str, default=None,
                        help='YAML or JSON settings file. Environment variables override it.')

    # Data source selection (mutually exclusive)
    source_group = parser.add_mutually_exclusive_group()
    source_group.add_argument('--endpoint', nargs='+', default=None,
                              help='Admin API endpoints (URL or host:port), tried in order. Default: ADMIN_ENDPOINT')
    source_group.add_argument('--fromJson', type=str, default=None,
                              help='Directory of saved snapshots to replay instead of live collection')

    # Authentication (required for live API)
    parser.add_argument('--accessKey', type=str, default=None,
                        help='Admin access key. Default: ADMIN_ACCESS_KEY')
    parser.add_argument('--secretKey', type=str, default=None,
                        help='Admin secret key. Default: ADMIN_SECRET_KEY')
    parser.add_argument('--region', type=str, default=None,
                        help='Region used when signing admin requests')
    parser.add_argument('--tlsCa', type=str, default=None,
                        help='Path to CA certificate for verifying admin API/InfluxDB TLS connections')
    parser.add_argument('--tlsValidation', type=str, choices=['strict', 'normal', 'none'], default='strict',
                        help='TLS validation mode for the admin API: strict (HTTPS only, --tlsCa must exist), '
                             'normal (default verification, plain HTTP allowed), none (no verification). '
                             'Default: strict')

    # JSON replay options
    parser.add_argument('--deploymentId', type=str, default=None,
                        help='Replay only snapshots of this deployment. Only used with --fromJson')

    # Output configuration
    output_group = parser.add_argument_group('Output Configuration')
    output_group.add_argument('--output', choices=['influxdb', 'prometheus', 'both'],
                              default='influxdb', help='Output format (default: influxdb)')
    output_group.add_argument('--saveJson', type=str, default=None,
                              help='Directory to save the collected admin documents as snapshots')

    # InfluxDB specific options
    influx_group = parser.add_argument_group('InfluxDB Configuration')
    influx_group.add_argument('--influxdbUrl', type=str, default=None,
                              help='InfluxDB server URL. Default: INFLUXDB_URL')
    influx_group.add_argument('--influxdbDatabase', type=str, default=None,
                              help='InfluxDB database name. Default: INFLUXDB_DATABASE')
    influx_group.add_argument('--influxdbToken', type=str, default=None,
                              help='InfluxDB authentication token. Default: INFLUXDB_TOKEN')

    # Prometheus specific options
    prometheus_group = parser.add_argument_group('Prometheus Configuration')
    prometheus_group.add_argument('--prometheus-port', type=int, default=DEFAULT_PROMETHEUS_PORT,
                                  help=f'Prometheus metrics server port (default: {DEFAULT_PROMETHEUS_PORT})')

    # Collection behavior
    behavior_group = parser.add_argument_group('Collection Behavior')
    behavior_group.add_argument('--intervalTime', type=int, default=60,
                                help=f'Collection interval in seconds. Allowed values: {ALLOWED_INTERVALS} (default: 60)')
    behavior_group.add_argument('--no-capacity', dest='capacity', action='store_false',
                                help='Do not ask for capacity figures with data usage')
    behavior_group.add_argument('--serverMetrics', action='store_true',
                                help='Ask for per-drive API metrics with server info')

    # Debugging
    debug_group = parser.add_argument_group('Debugging')
    debug_group.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                             default='INFO', help='Set logging level (default: INFO)')
    debug_group.add_argument('--logfile', type=str, default=None,
                             help='Path to log file (default: stdout only)')
    debug_group.add_argument('--maxIterations', type=int, default=0,
                             help='Maximum collection iterations (0=unlimited, >0=exit after N iterations)')

    return parser


def validate_arguments(args) -> Optional[str]:
    """Validate command line arguments that do not depend on settings.

    Returns:
        Error message if validation fails, None if valid
    """
    if args.deploymentId and not args.fromJson:
        return "--deploymentId is only used with --fromJson"

    if args.intervalTime not in ALLOWED_INTERVALS:
        return f"--intervalTime must be one of {ALLOWED_INTERVALS} seconds"

    if args.maxIterations < 0:
        return "--maxIterations must not be negative"

    return None


def log_startup(args, config: ReporterConfig) -> None:
    logging.info("=== Cluster Info Reporter Startup ===")
    logging.info(f"Data Source: {'JSON Replay' if config.use_json_replay else 'Live API'}")
    if config.use_json_replay:
        logging.info(f"JSON Directory: {config.from_json}")
        logging.info(f"Deployment Filter: {config.deployment_id}")
    else:
        logging.info(f"Admin Endpoints: {config.endpoints}")
        logging.info(f"Access Key: {config.access_key}")
        logging.info(f"TLS Validation: {config.tls_validation}")
        if config.tls_ca:
            logging.info(f"TLS CA Certificate: {config.tls_ca}")

    logging.info(f"Output Mode: {config.output}")
    if config.save_json:
        logging.info(f"Snapshot Directory: {config.save_json}")
    logging.info(f"Collection Interval: {config.interval_time}s")
    logging.info(f"Log Level: {config.log_level}")
    if config.max_iterations > 0:
        logging.info(f"Max Iterations: {config.max_iterations}")
    if config.output in ['prometheus', 'both']:
        logging.info(f"Prometheus Port: {args.prometheus_port}")
    logging.info("=== Configuration Complete ===")


def main():
    """Main entry point."""

    parser = create_argument_parser()
    args = parser.parse_args()

    error_msg = validate_arguments(args)
    if error_msg:
        parser.error(error_msg)

    settings = Settings(config_file=args.config)

    try:
        config = ReporterConfig.from_args(args, settings=settings)
    except ValueError as e:
        parser.error(str(e))

    LoggingConfigurator.setup_logging(log_level=config.log_level, log_file=config.logfile)
    log_startup(args, config)

    auth = None
    if not config.use_json_replay:
        auth = AdminSigV4Auth(config.access_key, config.secret_key, region=config.region)

    reporter = ClusterReporter(config, auth=auth)

    try:
        if not reporter.initialize():
            logging.error("Failed to initialize reporter data sources")
            sys.exit(1)

        deployment_id = reporter.discover_deployment()
        if not deployment_id:
            logging.error("Failed to discover the deployment id. Cannot proceed without it.")
            if config.use_json_replay:
                logging.error("Ensure --deploymentId matches the snapshots in the directory")
            else:
                logging.error("Ensure the admin API is reachable and the credentials are valid")
            sys.exit(1)

        logging.info(f"Discovered deployment: {deployment_id}")

        try:
            writer_config = WriterConfig.from_args(args, deployment_id=deployment_id, settings=settings)
        except ValueError as e:
            logging.error(f"Invalid output configuration: {e}")
            sys.exit(2)
        reporter.set_writer_config(writer_config)

        logging.info("Starting cluster info collection...")
        reporter.run_continuous()
        stats = reporter.get_statistics()
        logging.info(f"Completed {stats['collections_completed']} collections, {stats['failed_collections']} failed")

    except KeyboardInterrupt:
        logging.info("Received interrupt, shutting down...")


if __name__ == '__main__':
    main()
