"""
Pydantic Schemas for Request/Response Validation

Request bodies only enforce types. Business rules (quantity, order type
fields, card format, rating range) are checked by the services so that
errors are reported in their documented order.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime

from traktir.models import BotType, OrderStatus, OrderType


# =============================================================================
# MENU
# =============================================================================

class MenuItemCreate(BaseModel):
    """Request schema for adding a menu item."""
    name: str = Field(..., min_length=1, max_length=100, examples=["Борщ"])
    description: str = Field(default="", max_length=1000)
    price: float = Field(..., gt=0, examples=[8.99])
    category: str = Field(..., min_length=1, max_length=50, examples=["Супы"])
    image: Optional[str] = Field(None, max_length=500)


class MenuItemResponse(BaseModel):
    """A menu item."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    price: float
    category: str
    image: Optional[str]


class MenuListResponse(BaseModel):
    total: int
    items: List[MenuItemResponse]


class SeedResponse(BaseModel):
    success: bool
    message: str
    inserted: int


# =============================================================================
# REVIEWS
# =============================================================================

class ReviewCreate(BaseModel):
    """Request schema for submitting a review."""
    rating: float = Field(..., examples=[5])
    comment: Optional[str] = Field(None, max_length=2000)


class ReviewResponse(BaseModel):
    """A review annotated with the reviewer's name."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    menu_item_id: int
    user_id: str
    user_name: str
    rating: int
    comment: Optional[str]
    created_at: Optional[datetime]


class OwnReviewResponse(BaseModel):
    """The caller's own review (no name annotation)."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    menu_item_id: int
    rating: int
    comment: Optional[str]


class ReviewListResponse(BaseModel):
    """Reviews for an item plus the rating summary."""
    average: float
    count: int
    reviews: List[ReviewResponse]


class ReviewSubmitResponse(BaseModel):
    success: bool


# =============================================================================
# ORDERS
# =============================================================================

class CardDetailsPlaceholder(BaseModel):
    """Demonstration payment form. Never charged."""
    card_number: str = Field(default="", examples=["4111 1111 1111 1111"])
    expiry_date: str = Field(default="", examples=["12/27"])
    cvv: str = Field(default="", examples=["123"])


class OrderCreate(BaseModel):
    """Request schema for creating an order."""
    menu_item_id: int
    quantity: int = Field(..., examples=[2])
    order_type: str = Field(..., examples=["delivery", "booking"])
    address: Optional[str] = Field(None, max_length=255)
    booking_date: Optional[str] = Field(None, max_length=20, examples=["2026-10-20"])
    booking_time: Optional[str] = Field(None, max_length=20, examples=["19:30"])
    card_details: CardDetailsPlaceholder = Field(default_factory=CardDetailsPlaceholder)


class OrderResponse(BaseModel):
    """Response schema for a single order."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    menu_item_id: int
    menu_item_name: str
    menu_item_price: float
    quantity: int
    total_price: float
    order_type: OrderType
    address: Optional[str]
    booking_date: Optional[str]
    booking_time: Optional[str]
    card_number_masked: str
    status: OrderStatus
    created_at: Optional[datetime]


class OrderCreateResponse(BaseModel):
    """Response after successfully creating an order."""
    success: bool
    message: str
    order_id: int


class OrderListResponse(BaseModel):
    total: int
    orders: List[OrderResponse]


# =============================================================================
# CHAT
# =============================================================================

class ChatMessageCreate(BaseModel):
    """Request schema for sending a chat message."""
    message: str = Field(..., max_length=2000)
    bot_type: str = Field(default="simple", examples=["simple", "ai"])


class ChatMessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    message: str
    is_bot: bool
    bot_type: BotType
    created_at: Optional[datetime]


class ChatSendResponse(BaseModel):
    """Returned as soon as the user message is stored."""
    success: bool
    message_id: int


class ChatHistoryResponse(BaseModel):
    """Most recent messages, newest first."""
    messages: List[ChatMessageResponse]


class TokenBalanceResponse(BaseModel):
    """Token balance; ``tokens`` is None before the first AI message."""
    tokens: Optional[int]
    tokens_per_day: int
    last_refill: Optional[int]


# =============================================================================
# USERS
# =============================================================================

class CurrentUserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: Optional[str]
    email: Optional[str]


# =============================================================================
# COMMON
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    llm_service: str
    timestamp: datetime
