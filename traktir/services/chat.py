"""
Chat Dispatcher

Handles one message exchange with either assistant:

    receive ─► persist user message ─► schedule ─► generate ─► persist bot reply

The first two steps run inside the request. Generation runs later in a
Celery worker (see ``traktir.tasks``) and always ends with a stored bot
reply, even when the quota is gone or the language model fails.
"""

import logging
import re
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from traktir.core.config import get_settings
from traktir.core.exceptions import (
    AuthenticationRequired,
    QuotaExceeded,
    UpstreamFailure,
    ValidationFailed,
)
from traktir.models import BotType, ChatMessage
from traktir.services.llm.base import BaseLLMService
from traktir.services.tokens import TokenLedger

logger = logging.getLogger(__name__)


# Checked in order; the first keyword found in the message wins
CANNED_REPLIES = (
    ("как заказать", "Чтобы сделать заказ, вы можете позвонить нам по телефону или оформить заказ онлайн через наш сайт. Мы работаем ежедневно с 10:00 до 22:00."),
    ("где находится", "Наш ресторан находится по адресу: ул. Пушкина, д. 10. Мы расположены в центре города, рядом с центральным парком."),
    ("режим работы", "Мы работаем ежедневно с 10:00 до 22:00."),
    ("доставка", "Мы осуществляем доставку по всему городу. Минимальная сумма заказа - 1000 рублей. Доставка бесплатная при заказе от 2000 рублей."),
    ("хайку", "Напишите хайку о чем угодно, и я помогу вам с этим через AI."),
)

SIMPLE_FALLBACK = (
    "Извините, я не понял ваш вопрос. Попробуйте спросить о том, "
    "как сделать заказ, где мы находимся или о режиме работы."
)
QUOTA_EXCEEDED_MESSAGE = (
    "У вас закончились токены. Попробуйте завтра или используйте простого помощника."
)
ERROR_MESSAGE = "Извините, произошла ошибка."

HAIKU_TRIGGER = "хайку"

SYSTEM_PROMPT = (
    "You are a helpful {language} restaurant assistant. Help customers with "
    "menu recommendations, cooking methods, ingredients, and general inquiries "
    "about {language} cuisine. If asked about haiku, write one in {language}. "
    "Always respond in {language}."
)

# schedule(user_id, message, bot_type) -> None, must not wait for the reply
ReplyScheduler = Callable[[str, str, str], None]


def canned_reply(message: str) -> str:
    """Answer from the keyword table, or the fallback when nothing matches."""
    lowered = message.lower()
    for keyword, answer in CANNED_REPLIES:
        if keyword in lowered:
            return answer
    return SIMPLE_FALLBACK


def build_ai_prompt(message: str, language: str) -> str:
    """Turn a haiku request into an explicit instruction; pass anything else through."""
    if HAIKU_TRIGGER in message.lower():
        topic = re.sub(HAIKU_TRIGGER, "", message, flags=re.IGNORECASE).strip()
        return f"Write a haiku in {language} about {topic}"
    return message


def parse_bot_type(bot_type: str) -> BotType:
    try:
        return BotType(bot_type)
    except ValueError:
        raise ValidationFailed(
            f"Invalid bot type. Must be one of: {[b.value for b in BotType]}"
        )


class ChatDispatcher:
    """
    Message intake and reply generation for both assistants.

    Args:
        db: Session used for every read and write
        schedule: Enqueues reply generation (request side only)
        llm: Language model client (worker side only)
    """

    def __init__(
        self,
        db: AsyncSession,
        schedule: Optional[ReplyScheduler] = None,
        llm: Optional[BaseLLMService] = None,
    ):
        self.db = db
        self.schedule = schedule
        self.llm = llm
        self.ledger = TokenLedger(db)
        self.settings = get_settings()

    # =========================================================================
    # REQUEST SIDE
    # =========================================================================

    async def send(self, user_id: Optional[str], text: str, bot_type: str) -> int:
        """
        Accept a user message and schedule the bot's reply.

        Returns:
            int: id of the stored user message

        Raises:
            AuthenticationRequired: no user
            ValidationFailed: unknown bot type or blank text
            QuotaExceeded: AI chat requested with no tokens left
        """
        if not user_id:
            raise AuthenticationRequired("Not authenticated")

        kind = parse_bot_type(bot_type)
        if not text or not text.strip():
            raise ValidationFailed("Message must not be empty.")

        if kind == BotType.AI:
            balance = await self.ledger.ensure_balance(user_id)
            if balance.tokens <= 0:
                raise QuotaExceeded(QUOTA_EXCEEDED_MESSAGE)

        message = ChatMessage(user_id=user_id, message=text, is_bot=False, bot_type=kind)
        self.db.add(message)
        await self.db.flush()

        # The message is committed only once its reply is queued
        try:
            self.schedule(user_id, text, kind.value)
        except Exception:
            await self.db.rollback()
            logger.exception(f"Could not queue {kind.value} reply for user {user_id}")
            raise

        await self.db.commit()
        logger.info(f"Message #{message.id} from user {user_id} queued for {kind.value} bot")

        return message.id

    async def list_recent(
        self,
        user_id: Optional[str],
        bot_type: str,
        limit: Optional[int] = None,
    ) -> list[ChatMessage]:
        """Latest messages of one conversation, newest first."""
        if not user_id:
            return []

        kind = parse_bot_type(bot_type)
        result = await self.db.execute(
            select(ChatMessage)
            .where(ChatMessage.user_id == user_id, ChatMessage.bot_type == kind)
            .order_by(ChatMessage.id.desc())
            .limit(limit or self.settings.chat_history_limit)
        )
        return list(result.scalars().all())

    # =========================================================================
    # WORKER SIDE
    # =========================================================================

    async def generate_reply(self, user_id: str, text: str, bot_type: str) -> ChatMessage:
        """
        Produce and store the bot's answer to a user message.

        Never raises for generation problems: quota and provider failures
        become the stored reply text.
        """
        kind = BotType(bot_type)

        if kind == BotType.SIMPLE:
            reply = canned_reply(text)
        else:
            try:
                reply = await self._ai_reply(user_id, text)
            except UpstreamFailure as e:
                logger.warning(f"AI reply for user {user_id} failed: {e.message}")
                reply = ERROR_MESSAGE
            except SQLAlchemyError as e:
                logger.exception(f"Storage error generating AI reply for user {user_id}: {e}")
                await self.db.rollback()
                reply = ERROR_MESSAGE
            except Exception as e:
                logger.exception(f"Unexpected error generating AI reply for user {user_id}: {e}")
                reply = ERROR_MESSAGE

        return await self._store(user_id, reply, is_bot=True, bot_type=kind)

    async def _ai_reply(self, user_id: str, text: str) -> str:
        balance = await self.ledger.peek(user_id)
        if balance is None or balance.tokens <= 0:
            logger.info(f"User {user_id} has no tokens left; skipping language model")
            return QUOTA_EXCEEDED_MESSAGE

        language = self.settings.assistant_language
        result = await self.llm.complete(
            system_prompt=SYSTEM_PROMPT.format(language=language),
            user_prompt=build_ai_prompt(text, language),
        )
        if not result.success or not result.text:
            raise UpstreamFailure(result.error_message or "Empty completion")

        await self.ledger.decrement(user_id)
        logger.info(
            f"AI reply generated for user {user_id} "
            f"({result.response_time_ms:.0f}ms, model={result.model})"
        )
        return result.text

    async def _store(
        self,
        user_id: str,
        text: str,
        is_bot: bool,
        bot_type: BotType,
    ) -> ChatMessage:
        message = ChatMessage(
            user_id=user_id,
            message=text,
            is_bot=is_bot,
            bot_type=bot_type,
        )
        self.db.add(message)
        await self.db.commit()
        await self.db.refresh(message)
        return message
