"""Realtime notification socket endpoint."""
