"""
FastAPI Application Entry Point

Traktir restaurant backend: menu, orders, reviews and chat assistants.

Endpoints:
    - GET  /api/menu: List menu items (optional category filter)
    - POST /api/menu/seed: Insert the demo menu into an empty catalog
    - POST /api/menu/{id}/reviews: Submit or overwrite a review
    - GET  /api/menu/{id}/reviews: Reviews with average rating
    - POST /api/orders: Create a delivery or booking order
    - GET  /api/orders: List own orders
    - POST /api/chat/messages: Send a message to a bot
    - GET  /api/chat/messages: Recent messages of one conversation
    - GET  /api/chat/tokens: AI-chat token balance
    - GET  /health: System health check
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
import redis

from traktir.core.config import get_settings, setup_logging
from traktir.core.exceptions import AuthenticationRequired, ResourceNotFound, TraktirError
from traktir.core.security import CurrentUser, get_optional_user
from traktir.database import get_db, init_db, engine
from traktir.schemas import (
    MenuItemCreate,
    MenuItemResponse,
    MenuListResponse,
    SeedResponse,
    ReviewCreate,
    ReviewResponse,
    OwnReviewResponse,
    ReviewListResponse,
    ReviewSubmitResponse,
    OrderCreate,
    OrderResponse,
    OrderCreateResponse,
    OrderListResponse,
    ChatMessageCreate,
    ChatMessageResponse,
    ChatSendResponse,
    ChatHistoryResponse,
    TokenBalanceResponse,
    CurrentUserResponse,
    ErrorResponse,
    HealthResponse,
)
from traktir.services.chat import ChatDispatcher, ReplyScheduler
from traktir.services.llm import BaseLLMService, get_llm_service
from traktir.services.menu import MenuCatalog
from traktir.services.orders import CardPlaceholder, OrderProcessor
from traktir.services.reviews import ReviewAggregator, average_for
from traktir.services.tokens import TokenLedger

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    await init_db()
    logger.info("Database initialized")

    llm_service = get_llm_service()
    logger.info(f"LLM Service: {llm_service.provider_name}")

    missing = settings.validate_production_config()
    if missing:
        logger.warning(f"Missing configuration: {missing}")

    logger.info("Application ready!")

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await llm_service.close()
    await engine.dispose()
    logger.info("Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Restaurant menu, delivery and table-booking orders, reviews, "
        "and a chat assistant with a daily AI token allowance."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_reply_scheduler() -> ReplyScheduler:
    """Scheduler used for bot replies (overridden in tests)."""
    from traktir.tasks import schedule_bot_reply
    return schedule_bot_reply


def require_user(user: Optional[CurrentUser] = Depends(get_optional_user)) -> CurrentUser:
    if user is None:
        raise AuthenticationRequired("Not authenticated")
    return user


def _user_id(user: Optional[CurrentUser]) -> Optional[str]:
    return user.id if user else None


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db),
    llm_service: BaseLLMService = Depends(get_llm_service),
) -> HealthResponse:
    """Verify all system components are operational."""

    db_status = "healthy"
    try:
        await db.execute(select(func.now()))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    redis_status = "healthy"
    try:
        r = redis.Redis.from_url(settings.redis_url, socket_timeout=2)
        r.ping()
        r.close()
    except redis.RedisError as e:
        redis_status = f"unhealthy: {str(e)}"
        logger.error(f"Redis health check failed: {e}")

    llm_status = "healthy" if await llm_service.health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, redis_status, llm_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        redis=redis_status,
        llm_service=llm_status,
        timestamp=datetime.now(),
    )


@app.get(
    "/api/me",
    response_model=Optional[CurrentUserResponse],
    tags=["Users"],
    summary="Current User",
)
async def current_user(
    user: Optional[CurrentUser] = Depends(get_optional_user),
) -> Optional[CurrentUserResponse]:
    """The signed-in user's profile, or null when anonymous."""
    if user is None:
        return None
    return CurrentUserResponse.model_validate(user)


# =============================================================================
# MENU ENDPOINTS
# =============================================================================

@app.get(
    "/api/menu",
    response_model=MenuListResponse,
    tags=["Menu"],
    summary="List Menu Items",
)
async def list_menu_items(
    category: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> MenuListResponse:
    """All menu items, or only one category."""
    items = await MenuCatalog(db).list(category)
    return MenuListResponse(
        total=len(items),
        items=[MenuItemResponse.model_validate(item) for item in items],
    )


@app.get(
    "/api/menu/{menu_item_id}",
    response_model=MenuItemResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Menu"],
)
async def get_menu_item(
    menu_item_id: int,
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    """Get a specific menu item by ID."""
    item = await MenuCatalog(db).get(menu_item_id)
    if item is None:
        raise ResourceNotFound(f"Menu item #{menu_item_id} not found")
    return MenuItemResponse.model_validate(item)


@app.post(
    "/api/menu",
    response_model=MenuItemResponse,
    status_code=201,
    responses={401: {"model": ErrorResponse}},
    tags=["Menu"],
    summary="Add Menu Item",
)
async def add_menu_item(
    item_data: MenuItemCreate,
    user: CurrentUser = Depends(require_user),
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    """Add a dish to the catalog."""
    item = await MenuCatalog(db).add(
        name=item_data.name,
        description=item_data.description,
        price=Decimal(str(item_data.price)),
        category=item_data.category,
        image=item_data.image,
    )
    return MenuItemResponse.model_validate(item)


@app.post(
    "/api/menu/seed",
    response_model=SeedResponse,
    tags=["Menu"],
    summary="Seed Demo Menu",
)
async def seed_menu(
    db: AsyncSession = Depends(get_db),
) -> SeedResponse:
    """Insert the demo dishes when the catalog is empty."""
    inserted = await MenuCatalog(db).seed_demo_data()
    return SeedResponse(
        success=True,
        message="Demo menu inserted" if inserted else "Catalog already populated",
        inserted=inserted,
    )


# =============================================================================
# REVIEW ENDPOINTS
# =============================================================================

@app.post(
    "/api/menu/{menu_item_id}/reviews",
    response_model=ReviewSubmitResponse,
    responses={
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
    tags=["Reviews"],
    summary="Submit Review",
)
async def submit_review(
    menu_item_id: int,
    review_data: ReviewCreate,
    user: Optional[CurrentUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> ReviewSubmitResponse:
    """Create the caller's review of an item, or overwrite the existing one."""
    success = await ReviewAggregator(db).submit(
        user_id=_user_id(user),
        menu_item_id=menu_item_id,
        rating=review_data.rating,
        comment=review_data.comment,
    )
    return ReviewSubmitResponse(success=success)


@app.get(
    "/api/menu/{menu_item_id}/reviews",
    response_model=ReviewListResponse,
    tags=["Reviews"],
    summary="List Reviews",
)
async def list_reviews(
    menu_item_id: int,
    db: AsyncSession = Depends(get_db),
) -> ReviewListResponse:
    """Reviews for an item, newest first, with the average rating."""
    reviews = await ReviewAggregator(db).list_for_item(menu_item_id)
    summary = average_for(reviews)
    return ReviewListResponse(
        average=summary.average,
        count=summary.count,
        reviews=[ReviewResponse.model_validate(review) for review in reviews],
    )


@app.get(
    "/api/menu/{menu_item_id}/reviews/mine",
    response_model=Optional[OwnReviewResponse],
    tags=["Reviews"],
    summary="Own Review",
)
async def own_review(
    menu_item_id: int,
    user: Optional[CurrentUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> Optional[OwnReviewResponse]:
    """The caller's review of an item, or null."""
    review = await ReviewAggregator(db).get_user_review(_user_id(user), menu_item_id)
    if review is None:
        return None
    return OwnReviewResponse.model_validate(review)


# =============================================================================
# ORDER ENDPOINTS
# =============================================================================

@app.post(
    "/api/orders",
    response_model=OrderCreateResponse,
    status_code=201,
    responses={
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
    tags=["Orders"],
    summary="Create Order",
)
async def create_order(
    order_data: OrderCreate,
    user: Optional[CurrentUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> OrderCreateResponse:
    """Place a delivery or table-booking order for one menu item."""
    card = order_data.card_details
    order_id = await OrderProcessor(db).create(
        user_id=_user_id(user),
        menu_item_id=order_data.menu_item_id,
        quantity=order_data.quantity,
        order_type=order_data.order_type,
        card=CardPlaceholder(
            card_number=card.card_number,
            expiry_date=card.expiry_date,
            cvv=card.cvv,
        ),
        address=order_data.address,
        booking_date=order_data.booking_date,
        booking_time=order_data.booking_time,
    )
    return OrderCreateResponse(
        success=True,
        message="Order placed successfully!",
        order_id=order_id,
    )


@app.get(
    "/api/orders",
    response_model=OrderListResponse,
    tags=["Orders"],
    summary="List Own Orders",
)
async def list_orders(
    user: Optional[CurrentUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    """The caller's orders, newest first (empty when anonymous)."""
    orders = await OrderProcessor(db).list_for_user(_user_id(user))
    return OrderListResponse(
        total=len(orders),
        orders=[OrderResponse.model_validate(order) for order in orders],
    )


# =============================================================================
# CHAT ENDPOINTS
# =============================================================================

@app.post(
    "/api/chat/messages",
    response_model=ChatSendResponse,
    status_code=202,
    responses={
        401: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
    },
    tags=["Chat"],
    summary="Send Message",
)
async def send_message(
    message_data: ChatMessageCreate,
    user: Optional[CurrentUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
    schedule: ReplyScheduler = Depends(get_reply_scheduler),
) -> ChatSendResponse:
    """Store the message; the bot's reply appears in the history later."""
    dispatcher = ChatDispatcher(db, schedule=schedule)
    message_id = await dispatcher.send(
        user_id=_user_id(user),
        text=message_data.message,
        bot_type=message_data.bot_type,
    )
    return ChatSendResponse(success=True, message_id=message_id)


@app.get(
    "/api/chat/messages",
    response_model=ChatHistoryResponse,
    tags=["Chat"],
    summary="List Messages",
)
async def list_messages(
    bot_type: str = Query("simple"),
    user: Optional[CurrentUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> ChatHistoryResponse:
    """Most recent messages of one conversation, newest first."""
    messages = await ChatDispatcher(db).list_recent(_user_id(user), bot_type)
    return ChatHistoryResponse(
        messages=[ChatMessageResponse.model_validate(m) for m in messages],
    )


@app.get(
    "/api/chat/tokens",
    response_model=TokenBalanceResponse,
    responses={401: {"model": ErrorResponse}},
    tags=["Chat"],
    summary="Token Balance",
)
async def token_balance(
    user: CurrentUser = Depends(require_user),
    db: AsyncSession = Depends(get_db),
) -> TokenBalanceResponse:
    """Remaining AI-chat tokens without creating or refilling the balance."""
    ledger = TokenLedger(db)
    balance = await ledger.peek(user.id)
    return TokenBalanceResponse(
        tokens=balance.tokens if balance else None,
        tokens_per_day=ledger.tokens_per_day,
        last_refill=balance.last_refill if balance else None,
    )


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(TraktirError)
async def domain_exception_handler(request: Request, exc: TraktirError) -> JSONResponse:
    """Render rule-layer errors with their status and code."""
    logger.info(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.code, detail=exc.message).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies use the same error shape."""
    errors = "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(error="validation_failed", detail=errors).model_dump(),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("traktir.main:app", host=settings.api_host, port=settings.api_port)
