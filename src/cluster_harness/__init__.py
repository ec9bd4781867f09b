"""cluster_harness - ephemeral cluster projects for integration test runs."""

from cluster_harness.__version__ import __version__

__all__ = ["__version__"]
