"""Command line interface for the delivery service."""
