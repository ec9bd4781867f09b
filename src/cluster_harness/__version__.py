"""Version information for cluster_harness."""

__version__ = "0.3.0"
