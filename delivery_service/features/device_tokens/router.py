"""API router for device token registration.

Endpoints:
    POST   /device-tokens  - Register (or refresh) the caller's device token
    DELETE /device-tokens  - Remove one of the caller's device tokens

The caller is identified by the ``X-User-Id`` header set by the gateway in
front of this service.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Header, status

from delivery_service.core.database import NotFoundError
from delivery_service.core.dependencies.database import DbSessionDep  # noqa: TC001
from delivery_service.features.device_tokens.repository import DeviceTokenRepository
from delivery_service.features.device_tokens.schemas import (
    DeviceTokenRegister,
    DeviceTokenResponse,
    DeviceTokenUnregister,
)

router = APIRouter(prefix="/device-tokens", tags=["device-tokens"])
logger = logging.getLogger(__name__)

UserIdHeader = Annotated[str, Header(alias="X-User-Id", min_length=1, max_length=64)]


@router.post(
    "",
    response_model=DeviceTokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a device token",
)
async def register_device_token(
    payload: DeviceTokenRegister,
    user_id: UserIdHeader,
    session: DbSessionDep,
) -> DeviceTokenResponse:
    """Store the token for the calling user, replacing any previous owner."""
    repo = DeviceTokenRepository()
    device = await repo.register(session, user_id, payload.token, platform=payload.platform)
    await session.commit()
    logger.info("Device token registered", extra={"user_id": user_id, "platform": payload.platform})
    return DeviceTokenResponse.model_validate(device)


@router.delete(
    "",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Unregister a device token",
)
async def unregister_device_token(
    payload: DeviceTokenUnregister,
    user_id: UserIdHeader,
    session: DbSessionDep,
) -> None:
    """Remove the token if the calling user owns it.

    Raises:
        NotFoundError: If the user holds no such token.
    """
    removed = await DeviceTokenRepository().unregister(session, user_id, payload.token)
    if not removed:
        raise NotFoundError("DeviceToken", {"user_id": user_id})
    await session.commit()
    logger.info("Device token unregistered", extra={"user_id": user_id})
