"""Seller signup and Stripe Connect onboarding.

Signup stores the seller's payable profile (banking fields encrypted) and
creates their connected account once. Payout eligibility starts false and is
only ever changed by ``account.updated`` webhooks.
"""

import logging

from resale.core.exceptions import (
    PayableProfileNotFoundError,
    SellerAccountNotFoundError,
    UnauthorizedError,
)
from resale.core.field_codec import decrypt_field, encrypt_field
from resale.schemas.documents import PayableUser, SellerAccount
from resale.services.store_adapter import DocumentRepository
from resale.services.stripe_service import StripePaymentService

logger = logging.getLogger(__name__)


def mask(value: str, visible: int = 4) -> str:
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * (len(value) - visible) + value[-visible:]


class SellerService:
    def __init__(
        self,
        documents: DocumentRepository,
        processor: StripePaymentService,
        field_key: bytes,
        refresh_url: str,
        return_url: str,
    ):
        self._documents = documents
        self._processor = processor
        self._field_key = field_key
        self._refresh_url = refresh_url
        self._return_url = return_url

    async def signup(
        self,
        caller_id: str | None,
        email: str,
        sort_code: str,
        account_number: str,
        country: str = "GB",
    ) -> dict:
        if not caller_id:
            raise UnauthorizedError("Sign in to register as a seller")

        account = await self._documents.get_seller_account(caller_id)
        if account is None:
            created = await self._processor.create_connected_account(email=email, country=country)
            account = await self._documents.create_seller_account(SellerAccount(
                user_id=caller_id,
                processor_account_id=created["id"],
                transfers_active=False,
            ))
            logger.info("Connected account %s created for seller %s", account.processor_account_id, caller_id)

        # An overwritten profile keeps the payout state of the existing account.
        await self._documents.put_payable_user(PayableUser(
            user_id=caller_id,
            encrypted_sort_code=encrypt_field(sort_code, self._field_key),
            encrypted_account_number=encrypt_field(account_number, self._field_key),
            payable=account.transfers_active,
        ))

        return {
            "account_id": account.processor_account_id,
            "transfers_active": account.transfers_active,
        }

    async def create_onboarding_link(self, caller_id: str | None) -> dict:
        account = await self._require_account(caller_id)
        link = await self._processor.create_account_link(
            account.processor_account_id, self._refresh_url, self._return_url,
        )
        return {"url": link["url"], "account_id": account.processor_account_id}

    async def refresh_onboarding_link(self, caller_id: str | None) -> dict:
        """Issue a fresh link after the previous single-use link expired or was consumed."""
        account = await self._require_account(caller_id)
        logger.info("Refreshing onboarding link for account %s", account.processor_account_id)
        link = await self._processor.create_account_link(
            account.processor_account_id, self._refresh_url, self._return_url,
        )
        return {"url": link["url"], "account_id": account.processor_account_id}

    async def read_account_status(self, caller_id: str | None) -> dict:
        """Stored payout state next to what Stripe currently reports.

        Read-only: the stored flag only changes on ``account.updated``.
        """
        account = await self._require_account(caller_id)
        remote = await self._processor.retrieve_account(account.processor_account_id)
        return {
            "account_id": account.processor_account_id,
            "transfers_active": account.transfers_active,
            "processor_transfers": (remote.get("capabilities") or {}).get("transfers"),
        }

    async def read_payable_profile(self, caller_id: str | None) -> dict:
        if not caller_id:
            raise UnauthorizedError()
        user = await self._documents.get_payable_user(caller_id)
        if user is None:
            raise PayableProfileNotFoundError(caller_id)
        sort_code = decrypt_field(user.encrypted_sort_code, self._field_key).decode("utf-8")
        account_number = decrypt_field(user.encrypted_account_number, self._field_key).decode("utf-8")
        return {
            "sort_code": mask(sort_code, visible=2),
            "account_number": mask(account_number),
            "payable": user.payable,
        }

    async def _require_account(self, caller_id: str | None) -> SellerAccount:
        if not caller_id:
            raise UnauthorizedError()
        account = await self._documents.get_seller_account(caller_id)
        if account is None:
            raise SellerAccountNotFoundError(caller_id)
        return account
