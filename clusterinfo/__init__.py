"""Cluster info reporting for erasure-coded object storage deployments."""

__version__ = '0.3.0'
