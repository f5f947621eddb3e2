from fastapi import APIRouter, Depends

from resale.core.auth import get_current_user_id
from resale.schemas.api import PurchaseIntentRequest, PurchaseIntentResponse
from resale.services.container import ServiceContainer, get_services

router = APIRouter(prefix="/purchases", tags=["purchases"])


@router.post("/intent", response_model=PurchaseIntentResponse, status_code=201)
async def create_purchase_intent(
    req: PurchaseIntentRequest,
    current_user: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    result = await services.purchases.create_purchase_intent(
        current_user, req.event_id, req.ticket_id,
    )
    return PurchaseIntentResponse(**result)
