"""HTTP API for the period engine."""
