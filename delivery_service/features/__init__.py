"""Feature packages: notifications, device tokens, delivery and realtime."""
