"""Service layer built on the cluster integrations."""
