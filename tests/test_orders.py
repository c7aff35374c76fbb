"""Tests for order validation, snapshots and listing."""

from decimal import Decimal

import pytest
from sqlalchemy import select, func

from traktir.core.exceptions import AuthenticationRequired, ResourceNotFound, ValidationFailed
from traktir.models import Order, OrderStatus, OrderType
from traktir.services.orders import CardPlaceholder, OrderProcessor, validate_card


def valid_card() -> CardPlaceholder:
    return CardPlaceholder(card_number="4111 1111 1111 1111", expiry_date="12/27", cvv="123")


async def count_orders(db_session) -> int:
    result = await db_session.execute(select(func.count(Order.id)))
    return result.scalar()


class TestCardPlaceholder:

    def test_spaces_are_ignored(self):
        validate_card(valid_card())

    def test_masked_number(self):
        assert valid_card().masked_number == "**** **** **** 1111"

    @pytest.mark.parametrize("number", ["1234", "4111 1111 1111 111a", "4111111111111111 1", "٤١١١٤١١١٤١١١٤١١١"])
    def test_bad_card_number(self, number):
        with pytest.raises(ValidationFailed, match="16 цифр"):
            validate_card(CardPlaceholder(card_number=number, expiry_date="12/27", cvv="123"))

    @pytest.mark.parametrize("expiry", ["13/27", "00/27", "1/27", "12-27", "12/2027"])
    def test_bad_expiry(self, expiry):
        with pytest.raises(ValidationFailed, match="ММ/ГГ"):
            validate_card(CardPlaceholder(card_number="4111111111111111", expiry_date=expiry, cvv="123"))

    @pytest.mark.parametrize("cvv", ["12", "1234", "12a"])
    def test_bad_cvv(self, cvv):
        with pytest.raises(ValidationFailed, match="CVV"):
            validate_card(CardPlaceholder(card_number="4111111111111111", expiry_date="01/30", cvv=cvv))

    def test_missing_fields(self):
        with pytest.raises(ValidationFailed, match="заполните"):
            validate_card(CardPlaceholder(card_number="", expiry_date="", cvv=""))


@pytest.mark.asyncio
class TestOrderProcessor:

    async def test_delivery_order_snapshot(self, db_session, test_user, menu_items):
        item = menu_items["pelmeni"]
        order_id = await OrderProcessor(db_session).create(
            user_id=test_user.id,
            menu_item_id=item.id,
            quantity=3,
            order_type="delivery",
            card=valid_card(),
            address="  ул. Ленина, 5  ",
        )

        order = await db_session.get(Order, order_id)
        assert order.menu_item_name == "Пельмени"
        assert Decimal(order.menu_item_price) == Decimal("12.99")
        assert Decimal(order.total_price) == Decimal("38.97")
        assert order.order_type == OrderType.DELIVERY
        assert order.address == "ул. Ленина, 5"
        assert order.status == OrderStatus.PENDING
        assert order.card_number_masked == "**** **** **** 1111"

    async def test_snapshot_survives_catalog_edit(self, db_session, test_user, menu_items):
        item = menu_items["borscht"]
        order_id = await OrderProcessor(db_session).create(
            user_id=test_user.id, menu_item_id=item.id, quantity=1,
            order_type="delivery", card=valid_card(), address="Тверская, 1",
        )

        item.name = "Борщ украинский"
        item.price = Decimal("10.50")
        await db_session.commit()

        order = await db_session.get(Order, order_id)
        assert order.menu_item_name == "Борщ"
        assert Decimal(order.total_price) == Decimal("8.99")

    async def test_booking_order(self, db_session, test_user, menu_items):
        order_id = await OrderProcessor(db_session).create(
            user_id=test_user.id, menu_item_id=menu_items["medovik"].id, quantity=2,
            order_type="booking", card=valid_card(),
            booking_date="2026-10-20", booking_time="19:30",
        )

        order = await db_session.get(Order, order_id)
        assert order.order_type == OrderType.BOOKING
        assert order.address is None
        assert order.booking_time == "19:30"

    async def test_anonymous_rejected(self, db_session, menu_items):
        with pytest.raises(AuthenticationRequired):
            await OrderProcessor(db_session).create(
                user_id=None, menu_item_id=menu_items["borscht"].id, quantity=1,
                order_type="delivery", card=valid_card(), address="Тверская, 1",
            )

    @pytest.mark.parametrize("quantity", [0, -2])
    async def test_non_positive_quantity(self, db_session, test_user, menu_items, quantity):
        with pytest.raises(ValidationFailed, match="Quantity"):
            await OrderProcessor(db_session).create(
                user_id=test_user.id, menu_item_id=menu_items["borscht"].id, quantity=quantity,
                order_type="delivery", card=valid_card(), address="Тверская, 1",
            )
        assert await count_orders(db_session) == 0

    async def test_quantity_checked_before_item(self, db_session, test_user):
        with pytest.raises(ValidationFailed):
            await OrderProcessor(db_session).create(
                user_id=test_user.id, menu_item_id=999, quantity=0,
                order_type="delivery", card=valid_card(), address="Тверская, 1",
            )

    async def test_unknown_item(self, db_session, test_user):
        with pytest.raises(ResourceNotFound):
            await OrderProcessor(db_session).create(
                user_id=test_user.id, menu_item_id=999, quantity=1,
                order_type="delivery", card=valid_card(), address="Тверская, 1",
            )

    async def test_unknown_order_type(self, db_session, test_user, menu_items):
        with pytest.raises(ValidationFailed, match="order type"):
            await OrderProcessor(db_session).create(
                user_id=test_user.id, menu_item_id=menu_items["borscht"].id, quantity=1,
                order_type="takeaway", card=valid_card(),
            )

    @pytest.mark.parametrize("address", [None, "", "   "])
    async def test_delivery_needs_address(self, db_session, test_user, menu_items, address):
        with pytest.raises(ValidationFailed, match="Address"):
            await OrderProcessor(db_session).create(
                user_id=test_user.id, menu_item_id=menu_items["borscht"].id, quantity=1,
                order_type="delivery", card=valid_card(), address=address,
            )
        assert await count_orders(db_session) == 0

    @pytest.mark.parametrize("date,time", [(None, "19:30"), ("2026-10-20", None), ("", "")])
    async def test_booking_needs_date_and_time(self, db_session, test_user, menu_items, date, time):
        with pytest.raises(ValidationFailed, match="Booking"):
            await OrderProcessor(db_session).create(
                user_id=test_user.id, menu_item_id=menu_items["borscht"].id, quantity=1,
                order_type="booking", card=valid_card(),
                booking_date=date, booking_time=time,
            )

    async def test_address_checked_before_card(self, db_session, test_user, menu_items):
        with pytest.raises(ValidationFailed, match="Address"):
            await OrderProcessor(db_session).create(
                user_id=test_user.id, menu_item_id=menu_items["borscht"].id, quantity=1,
                order_type="delivery",
                card=CardPlaceholder(card_number="1234", expiry_date="", cvv=""),
            )

    async def test_bad_card_writes_nothing(self, db_session, test_user, menu_items):
        with pytest.raises(ValidationFailed):
            await OrderProcessor(db_session).create(
                user_id=test_user.id, menu_item_id=menu_items["borscht"].id, quantity=1,
                order_type="delivery", address="Тверская, 1",
                card=CardPlaceholder(card_number="1234", expiry_date="12/27", cvv="123"),
            )
        assert await count_orders(db_session) == 0

    async def test_list_newest_first(self, db_session, test_user, menu_items):
        processor = OrderProcessor(db_session)
        first = await processor.create(
            user_id=test_user.id, menu_item_id=menu_items["borscht"].id, quantity=1,
            order_type="delivery", card=valid_card(), address="Тверская, 1",
        )
        second = await processor.create(
            user_id=test_user.id, menu_item_id=menu_items["medovik"].id, quantity=1,
            order_type="booking", card=valid_card(),
            booking_date="2026-10-20", booking_time="19:30",
        )
        await processor.create(
            user_id="user-2", menu_item_id=menu_items["borscht"].id, quantity=1,
            order_type="delivery", card=valid_card(), address="Арбат, 2",
        )

        orders = await processor.list_for_user(test_user.id)
        assert [o.id for o in orders] == [second, first]

    async def test_list_for_anonymous(self, db_session, menu_items):
        assert await OrderProcessor(db_session).list_for_user(None) == []


@pytest.mark.asyncio
class TestOrderEndpoints:

    def order_payload(self, menu_item_id: int, **overrides) -> dict:
        payload = {
            "menu_item_id": menu_item_id,
            "quantity": 2,
            "order_type": "delivery",
            "address": "ул. Пушкина, 10",
            "card_details": {
                "card_number": "4111 1111 1111 1111",
                "expiry_date": "12/27",
                "cvv": "123",
            },
        }
        payload.update(overrides)
        return payload

    async def test_create_and_list(self, client, menu_items, auth_headers):
        res = await client.post(
            "/api/orders", headers=auth_headers,
            json=self.order_payload(menu_items["borscht"].id),
        )
        assert res.status_code == 201
        data = res.json()
        assert data["success"] is True
        order_id = data["order_id"]

        res = await client.get("/api/orders", headers=auth_headers)
        data = res.json()
        assert data["total"] == 1
        order = data["orders"][0]
        assert order["id"] == order_id
        assert order["total_price"] == 17.98
        assert order["status"] == "pending"
        assert order["card_number_masked"] == "**** **** **** 1111"
        assert "cvv" not in order

    async def test_create_requires_auth(self, client, menu_items):
        res = await client.post("/api/orders", json=self.order_payload(menu_items["borscht"].id))
        assert res.status_code == 401

    async def test_create_unknown_item(self, client, auth_headers):
        res = await client.post("/api/orders", headers=auth_headers, json=self.order_payload(999))
        assert res.status_code == 404

    async def test_create_zero_quantity(self, client, menu_items, auth_headers):
        res = await client.post(
            "/api/orders", headers=auth_headers,
            json=self.order_payload(menu_items["borscht"].id, quantity=0),
        )
        assert res.status_code == 422
        assert res.json()["error"] == "validation_failed"

    async def test_list_anonymous_is_empty(self, client):
        res = await client.get("/api/orders")
        assert res.status_code == 200
        assert res.json() == {"total": 0, "orders": []}

    async def test_orders_are_private(self, client, menu_items, auth_headers, other_auth_headers):
        await client.post(
            "/api/orders", headers=auth_headers,
            json=self.order_payload(menu_items["borscht"].id),
        )
        res = await client.get("/api/orders", headers=other_auth_headers)
        assert res.json()["total"] == 0
