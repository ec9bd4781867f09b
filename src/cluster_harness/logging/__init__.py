"""Logging configuration for cluster_harness."""

from cluster_harness.logging.config import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]
