"""Cross-snapshot aggregation and measurement building."""

from .topology import (
    ClusterSummary, fold_backend_disks, merge_storage_infos, group_disks_by_pool,
    summarize_erasure_sets, usable_capacity, summarize_cluster, merge_histograms
)
from .measurements import ClusterReport, build_measurements

__all__ = [
    'ClusterSummary', 'fold_backend_disks', 'merge_storage_infos', 'group_disks_by_pool',
    'summarize_erasure_sets', 'usable_capacity', 'summarize_cluster', 'merge_histograms',
    'ClusterReport', 'build_measurements'
]
