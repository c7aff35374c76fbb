"""Tests for the daily AI-chat token ledger."""

import pytest

from traktir.services.tokens import MS_PER_DAY, TokenLedger

T0 = 1_760_000_000_000


@pytest.mark.asyncio
class TestEnsureBalance:

    async def test_first_balance_is_full_allotment(self, db_session, test_user):
        ledger = TokenLedger(db_session)
        balance = await ledger.ensure_balance(test_user.id, now_ms=T0)

        assert balance.tokens == 10
        assert balance.last_refill == T0

    async def test_creates_single_row(self, db_session, test_user):
        ledger = TokenLedger(db_session)
        first = await ledger.ensure_balance(test_user.id, now_ms=T0)
        second = await ledger.ensure_balance(test_user.id, now_ms=T0 + 1000)

        assert first.id == second.id

    async def test_no_refill_within_a_day(self, db_session, test_user):
        ledger = TokenLedger(db_session)
        await ledger.ensure_balance(test_user.id, now_ms=T0)
        for _ in range(3):
            await ledger.decrement(test_user.id)

        balance = await ledger.ensure_balance(test_user.id, now_ms=T0 + MS_PER_DAY - 1)
        assert balance.tokens == 7
        assert balance.last_refill == T0

        balance = await ledger.ensure_balance(test_user.id, now_ms=T0 + MS_PER_DAY - 1)
        assert balance.tokens == 7

    async def test_refill_after_a_day_resets_exactly(self, db_session, test_user):
        ledger = TokenLedger(db_session)
        await ledger.ensure_balance(test_user.id, now_ms=T0)
        await ledger.decrement(test_user.id)

        balance = await ledger.ensure_balance(test_user.id, now_ms=T0 + MS_PER_DAY)
        assert balance.tokens == 10
        assert balance.last_refill == T0 + MS_PER_DAY

    async def test_unused_days_do_not_accumulate(self, db_session, test_user):
        ledger = TokenLedger(db_session)
        await ledger.ensure_balance(test_user.id, now_ms=T0)

        balance = await ledger.ensure_balance(test_user.id, now_ms=T0 + 5 * MS_PER_DAY)
        assert balance.tokens == 10

    async def test_custom_allotment(self, db_session, test_user):
        ledger = TokenLedger(db_session, tokens_per_day=3)
        balance = await ledger.ensure_balance(test_user.id, now_ms=T0)
        assert balance.tokens == 3


@pytest.mark.asyncio
class TestDecrementAndPeek:

    async def test_peek_without_balance(self, db_session, test_user):
        assert await TokenLedger(db_session).peek(test_user.id) is None

    async def test_peek_does_not_create(self, db_session, test_user):
        ledger = TokenLedger(db_session)
        await ledger.peek(test_user.id)
        assert await ledger.peek(test_user.id) is None

    async def test_decrement_by_one(self, db_session, test_user):
        ledger = TokenLedger(db_session)
        await ledger.ensure_balance(test_user.id, now_ms=T0)

        assert await ledger.decrement(test_user.id) is True
        balance = await ledger.peek(test_user.id)
        assert balance.tokens == 9

    async def test_decrement_never_goes_negative(self, db_session, test_user):
        ledger = TokenLedger(db_session, tokens_per_day=2)
        await ledger.ensure_balance(test_user.id, now_ms=T0)

        assert await ledger.decrement(test_user.id) is True
        assert await ledger.decrement(test_user.id) is True
        assert await ledger.decrement(test_user.id) is False

        balance = await ledger.peek(test_user.id)
        assert balance.tokens == 0

    async def test_decrement_without_balance_is_noop(self, db_session, test_user):
        ledger = TokenLedger(db_session)
        assert await ledger.decrement(test_user.id) is False
        assert await ledger.peek(test_user.id) is None
