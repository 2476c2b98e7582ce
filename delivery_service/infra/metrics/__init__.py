"""Prometheus metrics for infrastructure components."""
