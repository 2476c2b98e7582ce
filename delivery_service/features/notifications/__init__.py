"""Read-only view of the notification store."""

from delivery_service.features.notifications.models import Notification

__all__ = ["Notification"]
