"""Typed shapes of the documents kept in the document store.

Every read goes through ``model_validate`` in the store adapter, so a missing
required field or a wrong-typed value surfaces as ``DocumentDecodeError``
instead of a silent ``None``.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

PRICE_WINDOW_SIZE = 5


class _Document(BaseModel):
    model_config = ConfigDict(extra="ignore")


class EncryptedField(_Document):
    iv: str  # hex
    ciphertext: str  # hex


class Event(_Document):
    id: str
    name: str
    average_price: float = 0.0
    previous_average: float = 0.0
    price_window: list[float] = Field(default_factory=list)


class Ticket(_Document):
    id: str
    event_id: str
    seller_id: str | None = None
    seller_email: str | None = None
    price: float | None = None
    sold: bool = False
    artifact_ref: str | None = None


class Transaction(_Document):
    payment_intent_id: str
    buyer_id: str
    event_id: str
    ticket_id: str
    amount_cents: int = 0
    application_fee_cents: int = 0
    created_at: datetime | None = None
    buyer_notified: bool = False
    seller_notified: bool = False


class FailedTransaction(Transaction):
    failure_message: str = ""
    failed_at: datetime | None = None


class SellerAccount(_Document):
    user_id: str
    processor_account_id: str
    transfers_active: bool = False


class PayableUser(_Document):
    user_id: str
    encrypted_sort_code: EncryptedField
    encrypted_account_number: EncryptedField
    payable: bool = False


class AccountIndex(_Document):
    account_id: str
    user_id: str


class TicketHold(_Document):
    event_id: str
    ticket_id: str
    buyer_id: str
    payment_intent_id: str | None = None
    created_at: datetime | None = None


class Identity(_Document):
    uid: str
    email: str
    display_name: str | None = None


class PriceSummary(BaseModel):
    average_price: float
    previous_average: float
