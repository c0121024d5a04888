"""Main reporter orchestration logic.

Each collection cycle gathers the admin documents from the configured data
sources, combines them into one ClusterReport and hands the flattened
measurements to the writer.
"""

import logging
import time
from typing import Optional, Dict, Any, List

from requests.auth import AuthBase

from ..datasources.base import DataSource, CollectionResult, SnapshotType
from ..datasources.live_api import AdminAPIDataSource
from ..datasources.json_replay import JSONReplayDataSource, save_snapshot
from ..enrichment.measurements import ClusterReport, build_measurements
from ..errors import TopologyError
from ..schema.models import ServerInfoOpts
from ..writer.base import Writer
from ..writer.factory import WriterFactory
from .config import ReporterConfig
from .writer_config import WriterConfig


class ClusterReporter:
    """Main orchestrator for cluster info collection."""

    def __init__(self, config: ReporterConfig, writer_config: Optional[WriterConfig] = None,
                 auth: Optional[AuthBase] = None):
        """
        Args:
            config: Reporter configuration object
            writer_config: Writer configuration object (optional, can be set later)
            auth: requests auth hook for the admin API (live mode only)
        """
        self.config = config
        self.auth = auth
        self.logger = logging.getLogger(__name__)
        self.datasources: List[DataSource] = []
        self.writer_config: Optional[WriterConfig] = None
        self.writer: Optional[Writer] = None

        # Statistics tracking
        self.collections_completed = 0
        self.failed_collections = 0
        self.last_collection_time: Optional[float] = None
        self._deployment_id: Optional[str] = None

        if writer_config is not None:
            self.set_writer_config(writer_config)

    def initialize(self) -> bool:
        """Create and initialize one data source per configured endpoint.

        Returns:
            True if every data source initialized, False otherwise
        """
        for datasource_config in self.config.datasource_configs():
            if self.config.use_json_replay:
                self.logger.info("Initializing JSON replay mode")
                datasource: DataSource = JSONReplayDataSource(datasource_config)
            else:
                datasource_config['auth'] = self.auth
                datasource = AdminAPIDataSource(datasource_config)

            if not datasource.initialize():
                self.logger.error(f"Failed to initialize data source {datasource.source_name}")
                return False
            self.datasources.append(datasource)

        if not self.datasources:
            self.logger.error("No data sources configured")
            return False

        self.logger.info(f"Reporter initialized with {len(self.datasources)} data source(s) in "
                         f"{'JSON replay' if self.config.use_json_replay else 'live API'} mode")
        return True

    @property
    def deployment_id(self) -> Optional[str]:
        return self._deployment_id

    def _server_info_opts(self) -> ServerInfoOpts:
        return ServerInfoOpts(metrics=self.config.server_metrics)

    def discover_deployment(self) -> Optional[str]:
        """Find the deployment id, asking the admin API for it if no data source knows it yet."""
        for datasource in self.datasources:
            if datasource.deployment_info:
                self._deployment_id = datasource.deployment_info.deployment_id
                return self._deployment_id

        for datasource in self.datasources:
            result = datasource.collect(SnapshotType.SERVER_INFO, opts=self._server_info_opts())
            if result.success and result.data.deploymentID:
                self._deployment_id = result.data.deploymentID
                return self._deployment_id

        return None

    def set_writer_config(self, writer_config: WriterConfig) -> None:
        """Set the writer configuration and create the writer."""
        self.writer_config = writer_config
        self.writer = WriterFactory.create_writer_from_config(writer_config)
        self.logger.info(f"Writer configuration set for deployment: {writer_config.deployment_id}")

    def _collect_first(self, snapshot_type: SnapshotType, **kwargs) -> List[CollectionResult]:
        """Ask each data source in turn until one succeeds."""
        results = []
        for datasource in self.datasources:
            result = datasource.collect(snapshot_type, **kwargs)
            results.append(result)
            if result.success:
                break
        return results

    def collect_all_data(self) -> Dict[SnapshotType, List[CollectionResult]]:
        """Collect every document type.

        Every endpoint serves the whole cluster's documents, so each type
        comes from the first data source that answers.
        """
        if not self.datasources:
            self.logger.error("Data sources not initialized")
            return {}

        return {
            SnapshotType.SERVER_INFO: self._collect_first(SnapshotType.SERVER_INFO, opts=self._server_info_opts()),
            SnapshotType.STORAGE_INFO: self._collect_first(SnapshotType.STORAGE_INFO),
            SnapshotType.DATA_USAGE_INFO: self._collect_first(SnapshotType.DATA_USAGE_INFO,
                                                              capacity=self.config.capacity),
        }

    def build_report(self, results: Dict[SnapshotType, List[CollectionResult]]) -> ClusterReport:
        """Combine collection results into one ClusterReport."""
        def successful(snapshot_type):
            return [r.data for r in results.get(snapshot_type, []) if r.success]

        report = ClusterReport(deployment_id=self._deployment_id or 'unknown')
        # replayed documents keep the time they were taken at
        for datasource in self.datasources:
            taken_at = datasource.current_timestamp()
            if taken_at is not None:
                report.collected_at = taken_at
                break

        server_infos = successful(SnapshotType.SERVER_INFO)
        if server_infos:
            report.server_info = server_infos[0]
            if server_infos[0].deploymentID:
                report.deployment_id = server_infos[0].deploymentID

        storage_infos = successful(SnapshotType.STORAGE_INFO)
        if storage_infos:
            report.storage_info = storage_infos[0]

        usages = successful(SnapshotType.DATA_USAGE_INFO)
        if usages:
            report.data_usage = usages[0]

        return report

    def _save_snapshots(self, report: ClusterReport) -> None:
        documents = {
            'server_info': report.server_info,
            'storage_info': report.storage_info,
            'data_usage_info': report.data_usage,
        }
        for endpoint_key, document in documents.items():
            if document is not None:
                save_snapshot(self.config.save_json, endpoint_key, report.deployment_id,
                              document.to_api_response(), timestamp=report.collected_at)

    def run_single_collection(self) -> bool:
        """Run a single collection cycle.

        Returns:
            True if every document was collected and written, False otherwise
        """
        start_time = time.time()

        results = self.collect_all_data()
        report = self.build_report(results)
        missing = [t.value for t, rs in results.items() if not any(r.success for r in rs)]

        if report.is_empty():
            self.logger.error("No admin documents collected in this cycle")
            self.failed_collections += 1
            return False

        if self.config.save_json:
            self._save_snapshots(report)

        try:
            measurements = build_measurements(report)
        except TopologyError as e:
            self.logger.error(f"Inconsistent topology in collected documents, skipping write: {e}")
            self.failed_collections += 1
            return False

        if self.writer:
            written = self.writer.write(measurements, self.collections_completed + 1)
        else:
            self.logger.warning("No writer available - skipping data write")
            written = False

        self.collections_completed += 1
        self.last_collection_time = time.time()
        duration = self.last_collection_time - start_time
        self.logger.info(f"Collection cycle {self.collections_completed} completed in {duration:.2f}s "
                         f"(missing: {missing or 'none'})")

        success = written and not missing
        if not success:
            self.failed_collections += 1
        return success

    def run_continuous(self) -> None:
        """Run the collection loop.

        For JSON replay mode: processes all batches then exits
        For live API mode: runs until interrupted or max_iterations is reached
        """
        iteration_count = 0
        max_iterations = self.config.max_iterations
        self.logger.info(f"Starting continuous collection (interval: {self.config.interval_time}s, "
                         f"max_iterations: {max_iterations if max_iterations > 0 else 'unlimited'})")

        try:
            while True:
                iteration_count += 1
                if max_iterations > 0 and iteration_count > max_iterations:
                    self.logger.info(f"Reached maximum iterations ({max_iterations}) - exiting")
                    break

                if not self.run_single_collection():
                    self.logger.warning(f"Collection cycle {iteration_count} failed, continuing...")

                if self.config.use_json_replay:
                    if not self.datasources[0].advance_batch():
                        self.logger.info(f"No more JSON batches. Processed {iteration_count} batches total.")
                        break
                    continue

                if max_iterations == 0 or iteration_count < max_iterations:
                    self.logger.info(f"Waiting {self.config.interval_time} seconds until next collection...")
                    time.sleep(self.config.interval_time)

        except KeyboardInterrupt:
            self.logger.info("Received interrupt signal, shutting down...")
        finally:
            self.cleanup()

    def cleanup(self) -> None:
        """Close the writer and release the data sources."""
        if self.writer:
            self.logger.info("Collection finished - closing writer and flushing remaining data...")
            self.writer.close(timeout_seconds=90, force_exit_on_timeout=False)
            self.writer = None

        for datasource in self.datasources:
            datasource.cleanup()

        self.logger.info("Reporter cleanup completed")

    def get_statistics(self) -> Dict[str, Any]:
        return {
            'collections_completed': self.collections_completed,
            'failed_collections': self.failed_collections,
            'last_collection_time': self.last_collection_time,
            'datasource_type': 'json_replay' if self.config.use_json_replay else 'live_api',
            'deployment_id': self._deployment_id,
        }
