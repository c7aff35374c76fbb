"""
SQLAlchemy Database Models

Tables:
- users: profile mirror of identity provider subjects
- menu_items: the catalog
- chat_messages: append-only conversation log
- user_tokens: daily AI-chat allowance per user
- reviews: one rating per (user, menu item)
- orders: delivery and table-booking orders with item snapshots
"""

import enum

from sqlalchemy import (
    Column,
    Integer,
    BigInteger,
    String,
    Numeric,
    DateTime,
    Text,
    Enum,
    Boolean,
    ForeignKey,
    Index,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from traktir.database import Base


class BotType(str, enum.Enum):
    """Which assistant a chat message belongs to."""
    SIMPLE = "simple"
    AI = "ai"


class OrderType(str, enum.Enum):
    """Order type - home delivery or table booking."""
    DELIVERY = "delivery"
    BOOKING = "booking"


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class User(Base):
    """
    Profile of an authenticated user.

    The primary key is the identity provider's subject; name and email are
    refreshed from token claims whenever the user makes a request.
    """
    __tablename__ = "users"

    id = Column(String(128), primary_key=True)
    name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<User {self.id} - {self.name}>"


class MenuItem(Base):
    """A dish on the menu."""
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Numeric(10, 2), nullable=False)
    category = Column(String(50), nullable=False, index=True)
    image = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<MenuItem #{self.id} - {self.name} - {self.price}>"


class ChatMessage(Base):
    """
    One line of a conversation, from the user or from a bot.

    Rows are never updated or deleted; the autoincrement id is the
    creation order.
    """
    __tablename__ = "chat_messages"
    __table_args__ = (
        Index("ix_chat_messages_user_bot", "user_id", "bot_type"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(128), ForeignKey("users.id"), nullable=False, index=True)
    message = Column(Text, nullable=False)
    is_bot = Column(Boolean, nullable=False, default=False)
    bot_type = Column(Enum(BotType), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        who = "bot" if self.is_bot else "user"
        return f"<ChatMessage #{self.id} - {self.bot_type.value} - {who}>"


class UserTokenBalance(Base):
    """AI-chat token balance, created lazily on first AI use."""
    __tablename__ = "user_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(128), ForeignKey("users.id"), nullable=False, unique=True, index=True)
    tokens = Column(Integer, nullable=False)
    last_refill = Column(BigInteger, nullable=False)  # epoch milliseconds

    def __repr__(self):
        return f"<UserTokenBalance {self.user_id} - {self.tokens}>"


class Review(Base):
    """A user's rating of a menu item; at most one per (user, item)."""
    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("user_id", "menu_item_id", name="uq_reviews_user_menu_item"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=False, index=True)
    user_id = Column(String(128), ForeignKey("users.id"), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Review #{self.id} - item {self.menu_item_id} - {self.rating}>"


class Order(Base):
    """
    A delivery or table-booking order for one menu item.

    Name and price are copied from the menu item at order time so later
    catalog edits leave historical orders untouched.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(String(128), ForeignKey("users.id"), nullable=False, index=True)

    # =========================================================================
    # ITEM (live reference + snapshot)
    # =========================================================================
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=False, index=True)
    menu_item_name = Column(String(100), nullable=False)
    menu_item_price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)

    # =========================================================================
    # ORDER TYPE
    # =========================================================================
    order_type = Column(Enum(OrderType), nullable=False, index=True)
    address = Column(String(255), nullable=True)  # delivery
    booking_date = Column(String(20), nullable=True)  # booking
    booking_time = Column(String(20), nullable=True)  # booking

    # =========================================================================
    # PAYMENT PLACEHOLDER (demonstration only, never charged)
    # =========================================================================
    card_number_masked = Column(String(19), nullable=False)
    card_expiry = Column(String(5), nullable=False)

    # =========================================================================
    # STATUS
    # =========================================================================
    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Order #{self.id} - {self.order_type.value} - {self.menu_item_name} x{self.quantity}>"
