"""NYC shooting incidents: population enrichment and per-capita aggregates."""
