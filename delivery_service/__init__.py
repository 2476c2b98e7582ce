"""Notification delivery service: outbox-backed dispatch to realtime and push transports."""
