"""Upload-completion notifications from object storage.

The storage service posts one notification per finalized object; tagged
ticket uploads become listings, anything else is acknowledged and ignored.
"""

import hmac
import logging

from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse

from resale.core.exceptions import UnauthorizedError
from resale.schemas.api import StorageNotification, TicketResponse
from resale.services.container import ServiceContainer, get_services

router = APIRouter(prefix="/storage", tags=["storage"])
logger = logging.getLogger(__name__)


@router.post("/notifications", status_code=201)
async def upload_finalized(
    notification: StorageNotification,
    x_storage_token: str = Header(None, alias="X-Storage-Token"),
    services: ServiceContainer = Depends(get_services),
):
    expected = services.settings.storage_notification_token
    if not x_storage_token or not hmac.compare_digest(
        x_storage_token.encode("utf-8"), expected.encode("utf-8")
    ):
        raise UnauthorizedError("Invalid storage notification token")

    ticket = await services.listings.ingest(notification.model_dump())
    if ticket is None:
        return JSONResponse(status_code=202, content={"status": "ignored", "name": notification.name})
    return TicketResponse(**ticket.model_dump())
