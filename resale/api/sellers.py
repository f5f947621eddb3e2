from fastapi import APIRouter, Depends

from resale.core.auth import get_current_user_id
from resale.schemas.api import (
    AccountStatusResponse,
    OnboardingLinkResponse,
    PayableProfileResponse,
    SignupRequest,
    SignupResponse,
)
from resale.services.container import ServiceContainer, get_services

router = APIRouter(prefix="/sellers", tags=["sellers"])


@router.post("/signup", response_model=SignupResponse, status_code=201)
async def signup(
    req: SignupRequest,
    current_user: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    result = await services.sellers.signup(
        current_user,
        email=req.email,
        sort_code=req.sort_code,
        account_number=req.account_number,
        country=req.country or services.settings.connected_account_country,
    )
    return SignupResponse(**result)


@router.post("/onboarding-link", response_model=OnboardingLinkResponse)
async def create_onboarding_link(
    current_user: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return OnboardingLinkResponse(**await services.sellers.create_onboarding_link(current_user))


@router.post("/onboarding-link/refresh", response_model=OnboardingLinkResponse)
async def refresh_onboarding_link(
    current_user: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return OnboardingLinkResponse(**await services.sellers.refresh_onboarding_link(current_user))


@router.get("/me/payable-profile", response_model=PayableProfileResponse)
async def payable_profile(
    current_user: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return PayableProfileResponse(**await services.sellers.read_payable_profile(current_user))


@router.get("/me/account", response_model=AccountStatusResponse)
async def account_status(
    current_user: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services),
):
    return AccountStatusResponse(**await services.sellers.read_account_status(current_user))
