"""HTTP API for the Campus Vote service."""
