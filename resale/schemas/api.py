from pydantic import BaseModel, Field


class PurchaseIntentRequest(BaseModel):
    # Optional here so a missing id is reported by the purchase service as a 400.
    event_id: str | None = None
    ticket_id: str | None = None


class PurchaseIntentResponse(BaseModel):
    client_secret: str
    payment_intent_id: str
    amount_cents: int
    application_fee_cents: int
    currency: str


class SignupRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    sort_code: str = Field(..., min_length=6, max_length=8, pattern=r"^[0-9-]+$")
    account_number: str = Field(..., min_length=6, max_length=12, pattern=r"^[0-9]+$")
    country: str | None = Field(default=None, min_length=2, max_length=2)


class SignupResponse(BaseModel):
    account_id: str
    transfers_active: bool


class OnboardingLinkResponse(BaseModel):
    url: str
    account_id: str


class AccountStatusResponse(BaseModel):
    account_id: str
    transfers_active: bool
    processor_transfers: str | None = None


class PayableProfileResponse(BaseModel):
    sort_code: str
    account_number: str
    payable: bool


class StorageNotification(BaseModel):
    name: str = Field(..., min_length=1)
    size: int | None = None
    metadata: dict[str, str] = Field(default_factory=dict)


class TicketResponse(BaseModel):
    id: str
    event_id: str
    seller_id: str | None = None
    seller_email: str | None = None
    price: float | None = None
    sold: bool
    artifact_ref: str | None = None
