"""
Token Ledger

Tracks each user's daily AI-chat allowance. A balance is created with the
full allotment on first use, and reset to the allotment (never topped up
beyond it) once a full day has passed since the last refill.
"""

import logging
import time
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from traktir.core.config import get_settings
from traktir.models import UserTokenBalance

logger = logging.getLogger(__name__)

MS_PER_DAY = 24 * 60 * 60 * 1000


def current_time_ms() -> int:
    return int(time.time() * 1000)


class TokenLedger:
    """
    Per-user AI-chat token balances.

    Every operation reads the row fresh from the session; the store's
    single-row update atomicity is the only concurrency control.
    """

    def __init__(self, db: AsyncSession, tokens_per_day: Optional[int] = None):
        self.db = db
        self.tokens_per_day = tokens_per_day or get_settings().tokens_per_day

    async def peek(self, user_id: str) -> Optional[UserTokenBalance]:
        """Return the balance without creating or refilling it."""
        result = await self.db.execute(
            select(UserTokenBalance)
            .where(UserTokenBalance.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def ensure_balance(
        self,
        user_id: str,
        now_ms: Optional[int] = None,
    ) -> UserTokenBalance:
        """
        Get-or-initialize the user's balance, applying the daily refill.

        Args:
            user_id: Owner of the balance
            now_ms: Wall-clock time in epoch milliseconds (defaults to now)

        Returns:
            The current balance row, committed.
        """
        now_ms = current_time_ms() if now_ms is None else now_ms

        balance = await self.peek(user_id)
        if balance is None:
            balance = await self._create(user_id, now_ms)
            if balance is not None:
                return balance
            # Lost a first-use race; the other writer's row wins
            balance = await self.peek(user_id)

        if now_ms - balance.last_refill >= MS_PER_DAY:
            await self.db.execute(
                update(UserTokenBalance)
                .where(
                    UserTokenBalance.id == balance.id,
                    UserTokenBalance.last_refill <= now_ms - MS_PER_DAY,
                )
                .values(tokens=self.tokens_per_day, last_refill=now_ms)
            )
            await self.db.commit()
            await self.db.refresh(balance)
            logger.info(f"Tokens refilled for user {user_id} ({balance.tokens} available)")

        return balance

    async def _create(self, user_id: str, now_ms: int) -> Optional[UserTokenBalance]:
        balance = UserTokenBalance(
            user_id=user_id,
            tokens=self.tokens_per_day,
            last_refill=now_ms,
        )
        self.db.add(balance)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            return None

        await self.db.refresh(balance)
        logger.info(f"Token balance created for user {user_id} ({balance.tokens} tokens)")
        return balance

    async def decrement(self, user_id: str) -> bool:
        """
        Consume one token if any remain.

        Returns:
            True if a token was consumed, False if the balance was empty
            or missing.
        """
        result = await self.db.execute(
            update(UserTokenBalance)
            .where(
                UserTokenBalance.user_id == user_id,
                UserTokenBalance.tokens > 0,
            )
            .values(tokens=UserTokenBalance.tokens - 1)
        )
        await self.db.commit()

        consumed = result.rowcount > 0
        if consumed:
            logger.debug(f"Token consumed for user {user_id}")
        return consumed
