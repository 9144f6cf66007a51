"""
Unit tests for the Stripe client wrapper.
"""
from typing import Any
from unittest.mock import MagicMock

import pytest
import stripe

from brick_sponsorship.config import Settings
from brick_sponsorship.core.exceptions import (
    ConfigurationError,
    InvalidSignature,
    UpstreamError,
)
from brick_sponsorship.integrations.stripe_client import StripeClient, StripeErrorType
from tests.conftest import WEBHOOK_SECRET, make_event, sign_payload


class TestStripeClient:
    """Test suite for StripeClient."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_secret_key(self, test_settings: Settings, mocker: Any) -> None:
        create = mocker.patch("stripe.checkout.Session.create")
        client = StripeClient(test_settings.model_copy(update={"stripe_secret_key": None}))

        with pytest.raises(ConfigurationError):
            await client.create_checkout_session({"line_items": []})
        with pytest.raises(ConfigurationError):
            await client.retrieve_checkout_session("cs_test_1")

        create.assert_not_called()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_create_checkout_session_passes_credentials(
        self, test_settings: Settings, mocker: Any
    ) -> None:
        session = MagicMock()
        session.id = "cs_test_123"
        create = mocker.patch("stripe.checkout.Session.create", return_value=session)

        result = await StripeClient(test_settings).create_checkout_session(
            {"mode": "payment", "line_items": []}
        )

        assert result.id == "cs_test_123"
        kwargs = create.call_args.kwargs
        assert kwargs["api_key"] == "sk_test_fake_key_for_testing"
        assert kwargs["stripe_version"] == test_settings.stripe_api_version
        assert kwargs["mode"] == "payment"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_create_failure_wrapped(self, test_settings: Settings, mocker: Any) -> None:
        mocker.patch(
            "stripe.checkout.Session.create",
            side_effect=stripe.APIConnectionError("Network down"),
        )

        with pytest.raises(UpstreamError) as exc_info:
            await StripeClient(test_settings).create_checkout_session({"line_items": []})

        assert exc_info.value.retryable is True
        assert exc_info.value.user_message == "Failed to create payment session"
        assert isinstance(exc_info.value.original_error, stripe.APIConnectionError)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_retrieve_not_found(self, test_settings: Settings, mocker: Any) -> None:
        mocker.patch(
            "stripe.checkout.Session.retrieve",
            side_effect=stripe.InvalidRequestError("No such checkout.session: cs_x", "id"),
        )

        with pytest.raises(UpstreamError) as exc_info:
            await StripeClient(test_settings).retrieve_checkout_session("cs_x")

        assert exc_info.value.retryable is False
        assert "sk_test" not in exc_info.value.user_message
        assert exc_info.value.user_message == "Failed to verify payment session"

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "error, expected",
        [
            (stripe.RateLimitError("slow down"), StripeErrorType.RATE_LIMIT),
            (stripe.APIConnectionError("timeout"), StripeErrorType.TRANSIENT),
            (stripe.APIError("server"), StripeErrorType.TRANSIENT),
            (stripe.InvalidRequestError("bad", "id"), StripeErrorType.PERMANENT),
            (stripe.AuthenticationError("bad key"), StripeErrorType.PERMANENT),
        ],
    )
    def test_classify_error(self, error: stripe.StripeError, expected: StripeErrorType) -> None:
        assert StripeClient._classify_error(error) is expected

    @pytest.mark.unit
    def test_construct_event_valid(self, test_settings: Settings) -> None:
        payload = make_event()

        event = StripeClient(test_settings).construct_event(
            payload, sign_payload(payload), WEBHOOK_SECRET
        )

        assert event.type == "checkout.session.completed"
        assert event["data"]["object"]["metadata"]["brickCount"] == "5"

    @pytest.mark.unit
    def test_construct_event_wrong_secret(self, test_settings: Settings) -> None:
        payload = make_event()

        with pytest.raises(InvalidSignature):
            StripeClient(test_settings).construct_event(
                payload, sign_payload(payload, secret="whsec_other"), WEBHOOK_SECRET
            )

    @pytest.mark.unit
    def test_construct_event_garbage_header(self, test_settings: Settings) -> None:
        with pytest.raises(InvalidSignature):
            StripeClient(test_settings).construct_event(make_event(), "garbage", WEBHOOK_SECRET)
