"""Logging and Prometheus metrics for Konverge."""
