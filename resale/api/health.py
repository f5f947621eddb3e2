from fastapi import APIRouter, Depends

from resale.services.container import ServiceContainer, get_services

router = APIRouter(tags=["health"])

_VERSION = "0.1.0"


@router.get("/health")
async def health_check(services: ServiceContainer = Depends(get_services)):
    return {
        "status": "healthy",
        "version": _VERSION,
        "document_store": type(services.documents.store).__name__,
        "stripe_mode": "simulated" if services.processor._simulated else "live",
        "email_mode": "simulated" if services.email._simulated else "live",
    }
