"""
Tests for ReferralLedger.

Tests cover:
- Tracking with unique codes and collision retry
- Activation and the one-time signup bonus
- Code verification
- Policy status changes and per-referral settings
"""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from rewards_engine.config.constants import REFERRAL_CODE_MAX_ATTEMPTS
from rewards_engine.models.enums import ReferralStatus, ReferralTier
from rewards_engine.services.notification.change_notifier import REFERRAL_CHANNEL
from rewards_engine.services.referral.referral_ledger import (
    REFERRAL_CODE_INDEX,
    ReferralLedger,
)
from rewards_engine.utils.exceptions import WalletUpdateError


def duplicate_code_error():
    return IntegrityError(
        "INSERT",
        {},
        Exception(
            "duplicate key value violates unique constraint "
            f"\"{REFERRAL_CODE_INDEX}\""
        ),
    )


def duplicate_referred_user_error():
    return IntegrityError(
        "INSERT",
        {},
        Exception(
            "insert or update violates foreign key constraint "
            "\"fk_referral_tracking_referred_user\""
        ),
    )


@pytest.fixture
def referral_repo():
    return AsyncMock()


@pytest.fixture
def ledger(mock_session, mock_wallet_client, notifier, referral_repo, fixed_now):
    """Ledger with mocked repositories shared with its earnings path."""
    led = ReferralLedger(
        mock_session,
        wallet_client=mock_wallet_client,
        notifier=notifier,
        clock=lambda: fixed_now,
    )
    led.referral_repo = referral_repo
    led.earnings_manager.referral_repo = referral_repo
    led.earnings_manager.transaction_repo = AsyncMock()
    led.earnings_manager.summary_repo = AsyncMock()
    referral_repo.sum_earnings_by_referrer = AsyncMock(return_value=Decimal("500"))
    return led


class TestTrackReferral:
    """Test referral creation."""

    @pytest.mark.asyncio
    async def test_creates_pending_referral(
        self, ledger, referral_repo, mock_session, make_referral, notifier
    ):
        """New referrals start pending at bronze."""
        referral_repo.create = AsyncMock(side_effect=lambda **data: make_referral(**data))
        received = []
        notifier.subscribe(REFERRAL_CHANNEL, "abcd-referrer", received.append)

        record = await ledger.track_referral("abcd-referrer", "new-user")

        assert record.status == ReferralStatus.PENDING
        assert record.tier == ReferralTier.BRONZE
        assert record.commission_percentage == Decimal("0.05")
        assert record.auto_share_percentage == Decimal("0.5")
        assert record.referral_code.startswith("ABCD")
        mock_session.commit.assert_awaited_once()
        assert [r.id for r in received] == [record.id]

    @pytest.mark.asyncio
    async def test_self_referral_rejected(self, ledger, referral_repo):
        """A user cannot refer themselves."""
        referral_repo.create = AsyncMock()

        assert await ledger.track_referral("u1", "u1") is None
        referral_repo.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_retries_code_collision(
        self, ledger, referral_repo, mock_session, make_referral
    ):
        """A duplicate code is retried with a fresh one."""
        referral_repo.create = AsyncMock(
            side_effect=[duplicate_code_error(), make_referral(status="pending")]
        )

        record = await ledger.track_referral("u1", "u2")

        assert record is not None
        assert referral_repo.create.await_count == 2
        assert mock_session.begin_nested.call_count == 2
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(
        self, ledger, referral_repo, mock_session
    ):
        """Persistent collisions give None."""
        referral_repo.create = AsyncMock(side_effect=duplicate_code_error())

        assert await ledger.track_referral("u1", "u2") is None
        assert referral_repo.create.await_count == REFERRAL_CODE_MAX_ATTEMPTS
        mock_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_other_constraint_not_retried(
        self, ledger, referral_repo, mock_session
    ):
        """Only referral_code conflicts are retried; others fail the call."""
        referral_repo.create = AsyncMock(side_effect=duplicate_referred_user_error())

        assert await ledger.track_referral("u1", "u2") is None
        assert referral_repo.create.await_count == 1
        mock_session.rollback.assert_awaited()
        mock_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_code_conflict_read_from_driver_diagnostics(
        self, ledger, referral_repo, make_referral
    ):
        """Driver errors carrying constraint_name are matched by name."""
        driver_error = Exception("unique violation")
        driver_error.constraint_name = REFERRAL_CODE_INDEX
        referral_repo.create = AsyncMock(
            side_effect=[
                IntegrityError("INSERT", {}, driver_error),
                make_referral(status="pending"),
            ]
        )

        assert await ledger.track_referral("u1", "u2") is not None
        assert referral_repo.create.await_count == 2

    @pytest.mark.asyncio
    async def test_same_referrer_gets_distinct_codes(
        self, ledger, referral_repo, make_referral
    ):
        """Two referrals from one referrer never share a code."""
        referral_repo.create = AsyncMock(side_effect=lambda **data: make_referral(**data))

        first = await ledger.track_referral("abcd-referrer", "new-user-1")
        second = await ledger.track_referral("abcd-referrer", "new-user-2")

        assert first.referral_code.startswith("ABCD")
        assert second.referral_code.startswith("ABCD")
        assert first.referral_code != second.referral_code


class TestActivateReferral:
    """Test activation and signup bonus."""

    @pytest.mark.asyncio
    async def test_activation_credits_bonus(
        self, ledger, referral_repo, mock_session, mock_wallet_client, make_referral
    ):
        """Activation verifies the referral and credits 500 flat."""
        verified = make_referral(id="r1", referrer_id="up", status="verified")
        credited = make_referral(
            id="r1",
            referrer_id="up",
            status="verified",
            earnings_total=Decimal("500"),
            earnings_this_month=Decimal("500"),
        )
        referral_repo.transition_status = AsyncMock(return_value=verified)
        referral_repo.increment_earnings = AsyncMock(return_value=credited)

        record = await ledger.activate_referral("r1")

        assert record.status == ReferralStatus.VERIFIED
        assert record.earnings_total == Decimal("500")
        args = referral_repo.transition_status.await_args
        assert args.args[1] == ["pending"]
        assert args.args[2] == "verified"
        entry = ledger.earnings_manager.transaction_repo.add_entry.await_args.kwargs
        assert entry["amount"] == Decimal("500")
        assert entry["description"] == "Referral signup bonus (100.0% commission)"
        referral_repo.increment_earnings.assert_awaited_once_with("r1", Decimal("500"))
        mock_wallet_client.update_balance.assert_awaited_once_with("up", Decimal("500"))
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_second_activation_is_noop(
        self, ledger, referral_repo, make_referral
    ):
        """The bonus is credited once however often activation runs."""
        credited = make_referral(
            id="r1",
            status="verified",
            earnings_total=Decimal("500"),
            earnings_this_month=Decimal("500"),
        )
        referral_repo.transition_status = AsyncMock(
            side_effect=[make_referral(id="r1", status="verified"), None]
        )
        referral_repo.increment_earnings = AsyncMock(return_value=credited)
        referral_repo.get_by_id = AsyncMock(return_value=credited)

        first = await ledger.activate_referral("r1")
        second = await ledger.activate_referral("r1")

        assert first.earnings_total == Decimal("500")
        assert second.earnings_total == Decimal("500")
        referral_repo.increment_earnings.assert_awaited_once()
        ledger.earnings_manager.transaction_repo.add_entry.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_referral(self, ledger, referral_repo):
        """Unknown referrals give None."""
        referral_repo.transition_status = AsyncMock(return_value=None)
        referral_repo.get_by_id = AsyncMock(return_value=None)

        assert await ledger.activate_referral("missing") is None

    @pytest.mark.asyncio
    async def test_wallet_failure_rolls_back(
        self, ledger, referral_repo, mock_session, mock_wallet_client, make_referral
    ):
        """Wallet rejection undoes the activation."""
        referral_repo.transition_status = AsyncMock(
            return_value=make_referral(id="r1", status="verified")
        )
        referral_repo.increment_earnings = AsyncMock(
            return_value=make_referral(
                id="r1",
                status="verified",
                earnings_total=Decimal("500"),
                earnings_this_month=Decimal("500"),
            )
        )
        mock_wallet_client.update_balance.side_effect = WalletUpdateError(
            "HTTP 503", status=503
        )

        assert await ledger.activate_referral("r1") is None
        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()


class TestLookups:
    """Test read operations."""

    @pytest.mark.asyncio
    async def test_verify_referral_code(self, ledger, referral_repo, make_referral):
        """Only verified referrals are matched."""
        referral_repo.get_by_code = AsyncMock(
            return_value=make_referral(status="verified")
        )

        record = await ledger.verify_referral_code("ABCD123")

        assert record.status == ReferralStatus.VERIFIED
        referral_repo.get_by_code.assert_awaited_once_with(
            "ABCD123", status="verified"
        )

    @pytest.mark.asyncio
    async def test_verify_unknown_code(self, ledger, referral_repo):
        """Unknown codes give None."""
        referral_repo.get_by_code = AsyncMock(return_value=None)

        assert await ledger.verify_referral_code("NOPE") is None

    @pytest.mark.asyncio
    async def test_get_referrals_list(self, ledger, referral_repo, make_referral):
        """Filters and paging are passed through."""
        referral_repo.get_by_referrer = AsyncMock(
            return_value=[make_referral(id="r2"), make_referral(id="r1")]
        )

        records = await ledger.get_referrals_list("u1", limit=2, status="pending")

        assert [r.id for r in records] == ["r2", "r1"]
        referral_repo.get_by_referrer.assert_awaited_once_with(
            "u1", limit=2, offset=0, status="pending", tier=None
        )

    @pytest.mark.asyncio
    async def test_get_referrals_list_failure(self, ledger, referral_repo):
        """Store errors give an empty list."""
        referral_repo.get_by_referrer = AsyncMock(
            side_effect=OperationalError("SELECT", {}, Exception("down"))
        )

        assert await ledger.get_referrals_list("u1") == []

    @pytest.mark.asyncio
    async def test_get_referral(self, ledger, referral_repo, make_referral):
        """Rows are returned as DTOs; missing rows as None."""
        referral_repo.get_by_id = AsyncMock(return_value=make_referral(id="ref-9"))
        assert (await ledger.get_referral("ref-9")).id == "ref-9"

        referral_repo.get_by_id = AsyncMock(return_value=None)
        assert await ledger.get_referral("ref-404") is None

    @pytest.mark.asyncio
    async def test_get_referral_malformed_row(
        self, ledger, referral_repo, make_referral
    ):
        """A row failing validation is reported as not loaded."""
        referral_repo.get_by_id = AsyncMock(
            return_value=make_referral(commission_percentage=None)
        )

        assert await ledger.get_referral("ref-1") is None


class TestStatusAndSettings:
    """Test policy transitions and settings."""

    @pytest.mark.asyncio
    async def test_deactivate(self, ledger, referral_repo, mock_session, make_referral):
        """Verified referrals can be made inactive."""
        referral_repo.transition_status = AsyncMock(
            return_value=make_referral(status="inactive")
        )

        record = await ledger.set_referral_status("r1", "inactive")

        assert record.status == ReferralStatus.INACTIVE
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_policy_cannot_set_pending(self, ledger, referral_repo):
        """Policy cannot move referrals back to pending."""
        referral_repo.transition_status = AsyncMock()

        assert await ledger.set_referral_status("r1", "pending") is None
        referral_repo.transition_status.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_pending_referral_cannot_be_activated_by_policy(
        self, ledger, referral_repo, mock_session, make_referral
    ):
        """Pending referrals must be verified first."""
        referral_repo.transition_status = AsyncMock(return_value=None)
        referral_repo.get_by_id = AsyncMock(return_value=make_referral(status="pending"))

        assert await ledger.set_referral_status("r1", "active") is None
        mock_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "percentage",
        [
            Decimal("-0.1"),
            Decimal("1.01"),
            Decimal("NaN"),
            Decimal("Infinity"),
            float("nan"),
            "half",
        ],
    )
    async def test_auto_share_out_of_range(self, ledger, referral_repo, percentage):
        """Out-of-range and non-numeric percentages are rejected, not clamped."""
        referral_repo.set_auto_share_percentage = AsyncMock()

        assert await ledger.set_auto_share_percentage("r1", percentage) is None
        referral_repo.set_auto_share_percentage.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_auto_share_update(self, ledger, referral_repo, make_referral):
        """Valid percentages are stored."""
        referral_repo.set_auto_share_percentage = AsyncMock(
            return_value=make_referral(auto_share_percentage=Decimal("1"))
        )

        record = await ledger.set_auto_share_percentage("r1", Decimal("1"))

        assert record.auto_share_percentage == Decimal("1")

    @pytest.mark.asyncio
    async def test_auto_share_accepts_float(self, ledger, referral_repo, make_referral):
        """Plain floats are stored as their decimal text."""
        referral_repo.set_auto_share_percentage = AsyncMock(
            return_value=make_referral(auto_share_percentage=Decimal("0.25"))
        )

        assert await ledger.set_auto_share_percentage("r1", 0.25) is not None
        referral_repo.set_auto_share_percentage.assert_awaited_once_with(
            "r1", Decimal("0.25")
        )

    @pytest.mark.asyncio
    async def test_mark_first_purchase(
        self, ledger, referral_repo, mock_session, make_referral, fixed_now
    ):
        """First purchase date is set from the clock."""
        referral_repo.mark_first_purchase = AsyncMock(
            return_value=make_referral(first_purchase_date=fixed_now)
        )

        record = await ledger.mark_first_purchase("r1")

        assert record.first_purchase_date == fixed_now
        referral_repo.mark_first_purchase.assert_awaited_once_with("r1", fixed_now)
        mock_session.commit.assert_awaited_once()

    def test_subscribe_without_notifier(self, mock_session):
        """Without a notifier a no-op unsubscribe is returned."""
        ledger = ReferralLedger(mock_session)

        unsubscribe = ledger.subscribe_referral_changes("u1", lambda record: None)

        assert unsubscribe() is None
