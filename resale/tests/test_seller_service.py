from unittest.mock import AsyncMock, patch

import pytest

from resale.core.exceptions import (
    PayableProfileNotFoundError,
    SellerAccountNotFoundError,
    UnauthorizedError,
)
from resale.core.field_codec import decrypt_field
from resale.services.seller_service import mask
from resale.tests.conftest import FIELD_KEY_HEX

FIELD_KEY = bytes.fromhex(FIELD_KEY_HEX)


class TestMask:
    @pytest.mark.parametrize("value,visible,expected", [
        ("31926819", 4, "****6819"),
        ("40-11-62", 2, "******62"),
        ("123", 4, "***"),
        ("", 4, ""),
    ])
    def test_mask(self, value, visible, expected):
        assert mask(value, visible) == expected


class TestSignup:
    async def test_creates_account_and_encrypted_profile(self, services, store):
        result = await services.sellers.signup(
            "seller_new", email="new@resale.test", sort_code="40-11-62", account_number="31926819",
        )

        assert result["account_id"].startswith("acct_sim_")
        assert result["transfers_active"] is False

        account = await services.documents.get_seller_account("seller_new")
        assert account.processor_account_id == result["account_id"]
        assert await services.documents.resolve_account_owner(result["account_id"]) == "seller_new"

        raw = await store.get("users/seller_new")
        assert "31926819" not in str(raw)
        assert "40-11-62" not in str(raw)
        assert raw["payable"] is False

        user = await services.documents.get_payable_user("seller_new")
        assert decrypt_field(user.encrypted_account_number, FIELD_KEY) == b"31926819"
        assert decrypt_field(user.encrypted_sort_code, FIELD_KEY) == b"40-11-62"

    async def test_repeat_signup_keeps_connected_account(self, services):
        first = await services.sellers.signup(
            "seller_r", email="r@resale.test", sort_code="401162", account_number="11112222",
        )
        with patch.object(
            services.processor, "create_connected_account", new=AsyncMock(),
        ) as create:
            second = await services.sellers.signup(
                "seller_r", email="r@resale.test", sort_code="401162", account_number="33334444",
            )

        create.assert_not_awaited()
        assert second["account_id"] == first["account_id"]
        user = await services.documents.get_payable_user("seller_r")
        assert decrypt_field(user.encrypted_account_number, FIELD_KEY) == b"33334444"

    async def test_resignup_keeps_active_payout_state(self, services, seed):
        seller = await seed.seller(uid="seller_active", transfers_active=True)

        result = await services.sellers.signup(
            seller.user_id, email="a@resale.test", sort_code="401162", account_number="55556666",
        )

        assert result["transfers_active"] is True
        assert (await services.documents.get_payable_user(seller.user_id)).payable is True

    async def test_anonymous_signup(self, services, store):
        with pytest.raises(UnauthorizedError):
            await services.sellers.signup(None, email="x@resale.test", sort_code="401162", account_number="123456")
        assert store.writes() == []


class TestOnboardingLinks:
    async def test_link_for_own_account(self, services, seed):
        seller = await seed.seller(uid="seller_link")

        link = await services.sellers.create_onboarding_link(seller.user_id)

        assert link["account_id"] == seller.processor_account_id
        assert seller.processor_account_id in link["url"]

    async def test_refresh_issues_new_url(self, services, seed):
        seller = await seed.seller(uid="seller_refresh")

        first = await services.sellers.create_onboarding_link(seller.user_id)
        second = await services.sellers.refresh_onboarding_link(seller.user_id)

        assert second["account_id"] == first["account_id"]
        assert second["url"] != first["url"]

    async def test_link_passes_redirect_urls(self, services, seed, test_settings):
        seller = await seed.seller()
        link = {"url": "https://connect.stripe.com/setup/e/acct", "account": seller.processor_account_id}

        with patch.object(
            services.processor, "create_account_link", new=AsyncMock(return_value=link),
        ) as create:
            await services.sellers.refresh_onboarding_link(seller.user_id)

        create.assert_awaited_once_with(
            seller.processor_account_id,
            test_settings.onboarding_refresh_url,
            test_settings.onboarding_return_url,
        )

    @pytest.mark.parametrize("method", [
        "create_onboarding_link", "refresh_onboarding_link", "read_account_status",
    ])
    async def test_no_account(self, services, method):
        with pytest.raises(SellerAccountNotFoundError):
            await getattr(services.sellers, method)("user_without_account")

    @pytest.mark.parametrize("method", [
        "create_onboarding_link", "refresh_onboarding_link", "read_account_status",
    ])
    async def test_anonymous(self, services, method):
        with pytest.raises(UnauthorizedError):
            await getattr(services.sellers, method)(None)


class TestAccountStatus:
    async def test_reports_stored_and_processor_state(self, services, seed, store):
        seller = await seed.seller(transfers_active=False)
        remote = {"id": seller.processor_account_id, "capabilities": {"transfers": "active"}}
        store.calls.clear()

        with patch.object(
            services.processor, "retrieve_account", new=AsyncMock(return_value=remote),
        ) as retrieve:
            status = await services.sellers.read_account_status(seller.user_id)

        retrieve.assert_awaited_once_with(seller.processor_account_id)
        assert status == {
            "account_id": seller.processor_account_id,
            "transfers_active": False,
            "processor_transfers": "active",
        }
        # payout eligibility only changes through account.updated
        assert store.writes() == []

    async def test_missing_capability(self, services, seed):
        seller = await seed.seller()
        remote = {"id": seller.processor_account_id, "capabilities": {}}

        with patch.object(services.processor, "retrieve_account", new=AsyncMock(return_value=remote)):
            status = await services.sellers.read_account_status(seller.user_id)

        assert status["processor_transfers"] is None
        assert status["transfers_active"] is True


class TestPayableProfile:
    async def test_masked_profile(self, services):
        await services.sellers.signup(
            "seller_p", email="p@resale.test", sort_code="40-11-62", account_number="31926819",
        )

        profile = await services.sellers.read_payable_profile("seller_p")

        assert profile == {"sort_code": "******62", "account_number": "****6819", "payable": False}

    async def test_missing_profile(self, services):
        with pytest.raises(PayableProfileNotFoundError):
            await services.sellers.read_payable_profile("nobody")
