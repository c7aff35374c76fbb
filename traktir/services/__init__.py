"""
                        Services Module

Business rules of the restaurant backend. Every service wraps an
``AsyncSession``; the language model follows the Mock/Real factory pattern.

Services:
    - tokens: daily AI-chat allowance
    - menu: menu catalog and demo seed
    - reviews: ratings and averages
    - orders: delivery and booking orders
    - chat: message intake and bot replies
    - llm: OpenAI-compatible language model client
"""

from traktir.services.tokens import TokenLedger
from traktir.services.menu import MenuCatalog
from traktir.services.reviews import ReviewAggregator, RatingSummary, average_for
from traktir.services.orders import OrderProcessor, CardPlaceholder
from traktir.services.chat import ChatDispatcher

__all__ = [
    "TokenLedger",
    "MenuCatalog",
    "ReviewAggregator",
    "RatingSummary",
    "average_for",
    "OrderProcessor",
    "CardPlaceholder",
    "ChatDispatcher",
]
