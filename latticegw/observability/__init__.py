"""Logging and metrics for latticegw."""
