"""
Unit tests for payment verification.
"""
from typing import Any
from unittest.mock import AsyncMock

import pytest

from brick_sponsorship.core.exceptions import InvalidRequest, UpstreamError
from brick_sponsorship.core.verification import (
    PaymentStatus,
    PaymentVerifier,
    normalize_session,
)

SESSION = {
    "id": "cs_test_paid",
    "payment_status": "paid",
    "amount_total": 200000,
    "currency": "lkr",
    "customer_details": {"email": "donor@example.org"},
    "metadata": {"totalBricks": "2", "donationType": "chaithya_bricks"},
    "created": 1760000000,
}


class TestNormalizeSession:
    """Test suite for session normalization."""

    @pytest.mark.unit
    def test_full_session(self) -> None:
        result = normalize_session(SESSION)

        assert result.session_id == "cs_test_paid"
        assert result.payment_status is PaymentStatus.PAID
        assert result.amount_total == 200000
        assert result.currency == "lkr"
        assert result.customer_email == "donor@example.org"
        assert result.metadata == {"totalBricks": "2", "donationType": "chaithya_bricks"}
        assert result.created == 1760000000

    @pytest.mark.unit
    def test_missing_optional_fields(self) -> None:
        result = normalize_session(
            {"id": "cs_test_open", "payment_status": "unpaid", "customer_details": None}
        )

        assert result.payment_status is PaymentStatus.UNPAID
        assert result.customer_email is None
        assert result.metadata == {}
        assert result.amount_total is None

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("paid", PaymentStatus.PAID),
            ("unpaid", PaymentStatus.UNPAID),
            ("no_payment_required", PaymentStatus.NO_PAYMENT_REQUIRED),
            ("something_new", PaymentStatus.OTHER),
            (None, PaymentStatus.OTHER),
        ],
    )
    def test_payment_status_parse(self, raw: Any, expected: PaymentStatus) -> None:
        assert PaymentStatus.parse(raw) is expected

    @pytest.mark.unit
    def test_serializes_status_value(self) -> None:
        assert normalize_session(SESSION).model_dump(mode="json")["payment_status"] == "paid"


class TestPaymentVerifier:
    """Test suite for PaymentVerifier."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_verify(self, mock_stripe_client: AsyncMock) -> None:
        mock_stripe_client.retrieve_checkout_session.return_value = SESSION

        result = await PaymentVerifier(stripe_client=mock_stripe_client).verify("cs_test_paid")

        assert result.payment_status is PaymentStatus.PAID
        mock_stripe_client.retrieve_checkout_session.assert_awaited_once_with("cs_test_paid")

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("session_id", [None, "", "   ", 42])
    async def test_missing_session_id(self, mock_stripe_client: AsyncMock, session_id: Any) -> None:
        with pytest.raises(InvalidRequest, match="Session ID missing"):
            await PaymentVerifier(stripe_client=mock_stripe_client).verify(session_id)

        mock_stripe_client.retrieve_checkout_session.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_upstream_error(self, mock_stripe_client: AsyncMock) -> None:
        mock_stripe_client.retrieve_checkout_session.side_effect = UpstreamError(
            "Stripe retrieve_checkout_session failed: No such checkout.session",
            user_message="Failed to verify payment session",
        )

        with pytest.raises(UpstreamError):
            await PaymentVerifier(stripe_client=mock_stripe_client).verify("cs_missing")
