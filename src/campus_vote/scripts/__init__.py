"""Operational scripts for the Campus Vote service."""
