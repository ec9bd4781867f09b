"""Core runtime pieces: configuration, lifecycle hooks, termination handling."""
