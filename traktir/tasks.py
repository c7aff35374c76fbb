"""
Celery Tasks
Background generation of chat bot replies.
"""

import asyncio
import logging
import time

from traktir.celery_worker import celery_app
from traktir.database import worker_session
from traktir.services.chat import ChatDispatcher
from traktir.services.llm import create_llm_service

logger = logging.getLogger(__name__)


async def _generate_and_store(user_id: str, message: str, bot_type: str) -> int:
    llm = create_llm_service()
    try:
        async with worker_session() as db:
            dispatcher = ChatDispatcher(db, llm=llm)
            reply = await dispatcher.generate_reply(user_id, message, bot_type)
            return reply.id
    finally:
        await llm.close()


@celery_app.task(bind=True)
def generate_bot_reply(self, user_id: str, message: str, bot_type: str) -> dict:
    """
    Generate and store the bot's reply to a chat message.

    Provider failures are already turned into a stored fallback reply by
    the dispatcher; anything raised here is a storage or worker problem.

    Args:
        user_id: Owner of the conversation
        message: The user's text
        bot_type: "simple" or "ai"

    Returns:
        dict: Result of the generation
    """
    task_id = self.request.id
    logger.info(f"Task {task_id}: generating {bot_type} reply for user {user_id}")
    start_time = time.time()

    try:
        reply_id = asyncio.run(_generate_and_store(user_id, message, bot_type))
    except Exception as e:
        elapsed = round(time.time() - start_time, 3)
        logger.exception(f"Task {task_id}: reply for user {user_id} failed after {elapsed}s - {e}")
        raise

    elapsed = round(time.time() - start_time, 3)
    logger.info(f"Task {task_id}: reply #{reply_id} stored in {elapsed}s")

    return {
        'success': True,
        'task_id': task_id,
        'reply_id': reply_id,
        'processing_time_seconds': elapsed,
    }


def schedule_bot_reply(user_id: str, message: str, bot_type: str) -> None:
    """Enqueue reply generation without waiting for it."""
    generate_bot_reply.delay(user_id, message, bot_type)
