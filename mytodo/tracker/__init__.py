"""Epic issue discovery and the weighted tracker report."""
