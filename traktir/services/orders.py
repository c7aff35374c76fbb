"""
Order Processor

Validates and records delivery and table-booking orders for a single menu
item. Checks run in a fixed order and the first failure is reported; no
row is written unless all of them pass.

Payment fields are a demonstration form only: they are format-checked,
the card number is stored masked, and nothing is ever charged.
"""

import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from traktir.core.exceptions import AuthenticationRequired, ResourceNotFound, ValidationFailed
from traktir.models import MenuItem, Order, OrderStatus, OrderType

logger = logging.getLogger(__name__)

EXPIRY_PATTERN = re.compile(r"^(0[1-9]|1[0-2])/\d{2}$")


@dataclass
class CardPlaceholder:
    """Card form fields as typed by the user."""
    card_number: str
    expiry_date: str
    cvv: str

    @property
    def digits(self) -> str:
        return re.sub(r"\s", "", self.card_number or "")

    @property
    def masked_number(self) -> str:
        return "**** **** **** " + self.digits[-4:]


def validate_card(card: CardPlaceholder) -> None:
    """
    Format checks for the demonstration payment form.

    Raises:
        ValidationFailed: on the first field that does not match
    """
    if not card.card_number or not card.expiry_date or not card.cvv:
        raise ValidationFailed("Пожалуйста, заполните все поля банковской карты (для демонстрации).")
    if len(card.digits) != 16 or not card.digits.isdigit() or not card.digits.isascii():
        raise ValidationFailed("Номер карты должен состоять из 16 цифр (для демонстрации).")
    if not EXPIRY_PATTERN.match(card.expiry_date):
        raise ValidationFailed("Срок действия карты должен быть в формате ММ/ГГ (для демонстрации).")
    if len(card.cvv) != 3 or not card.cvv.isdigit() or not card.cvv.isascii():
        raise ValidationFailed("CVV должен состоять из 3 цифр (для демонстрации).")


class OrderProcessor:
    """Create and list a user's orders."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        user_id: Optional[str],
        menu_item_id: int,
        quantity: int,
        order_type: str,
        card: CardPlaceholder,
        address: Optional[str] = None,
        booking_date: Optional[str] = None,
        booking_time: Optional[str] = None,
    ) -> int:
        """
        Validate and store a new order.

        Args:
            user_id: Authenticated user, or None
            menu_item_id: Item being ordered
            quantity: Number of portions
            order_type: "delivery" or "booking"
            card: Placeholder payment details
            address: Required for delivery
            booking_date: Required for booking
            booking_time: Required for booking

        Returns:
            int: The new order's id

        Raises:
            AuthenticationRequired, ValidationFailed, ResourceNotFound
        """
        if not user_id:
            raise AuthenticationRequired("User not authenticated. Please log in to place an order.")

        if quantity is None or quantity <= 0:
            raise ValidationFailed("Quantity must be greater than 0.")

        menu_item = await self.db.get(MenuItem, menu_item_id)
        if menu_item is None:
            raise ResourceNotFound("Menu item not found.")

        try:
            kind = OrderType(order_type)
        except ValueError:
            raise ValidationFailed(
                f"Invalid order type. Must be one of: {[t.value for t in OrderType]}"
            )

        if kind == OrderType.DELIVERY and not (address or "").strip():
            raise ValidationFailed("Address is required for delivery orders.")
        if kind == OrderType.BOOKING and (not booking_date or not booking_time):
            raise ValidationFailed("Booking date and time are required for table reservations.")

        validate_card(card)

        price = Decimal(menu_item.price)
        new_order = Order(
            user_id=user_id,
            menu_item_id=menu_item.id,
            menu_item_name=menu_item.name,
            menu_item_price=price,
            quantity=quantity,
            total_price=price * quantity,
            order_type=kind,
            address=address.strip() if kind == OrderType.DELIVERY else None,
            booking_date=booking_date if kind == OrderType.BOOKING else None,
            booking_time=booking_time if kind == OrderType.BOOKING else None,
            card_number_masked=card.masked_number,
            card_expiry=card.expiry_date,
            status=OrderStatus.PENDING,
        )

        self.db.add(new_order)
        await self.db.commit()
        await self.db.refresh(new_order)

        logger.info(
            f"Order #{new_order.id} created: {kind.value}, "
            f"{new_order.menu_item_name} x{quantity} = {new_order.total_price}"
        )
        return new_order.id

    async def list_for_user(self, user_id: Optional[str]) -> list[Order]:
        """The user's own orders, newest first; empty when anonymous."""
        if not user_id:
            return []

        result = await self.db.execute(
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        return list(result.scalars().all())
