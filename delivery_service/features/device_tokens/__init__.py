"""Push device token registry."""

from delivery_service.features.device_tokens.lookup import DeviceTokenLookup
from delivery_service.features.device_tokens.models import DeviceToken
from delivery_service.features.device_tokens.repository import DeviceTokenRepository

__all__ = ["DeviceToken", "DeviceTokenLookup", "DeviceTokenRepository"]
