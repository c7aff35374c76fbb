"""
Menu Catalog

Stores and serves menu items. The demo dataset is inserted only into an
empty catalog, so seeding can be called any number of times.
"""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from traktir.models import MenuItem

logger = logging.getLogger(__name__)


DEMO_MENU = [
    {
        "name": "Борщ",
        "description": "Традиционный суп со свеклой, капустой и говядиной",
        "price": Decimal("8.99"),
        "category": "Супы",
        "image": "https://images.unsplash.com/photo-1550367363-ea12860cc124?w=500",
    },
    {
        "name": "Пельмени",
        "description": "Домашние пельмени с мясом, подаются со сметаной",
        "price": Decimal("12.99"),
        "category": "Основные блюда",
        "image": "https://images.unsplash.com/photo-1556716916-e08232095ac8?w=500",
    },
    {
        "name": "Оливье",
        "description": "Классический салат с курицей, овощами и майонезом",
        "price": Decimal("7.99"),
        "category": "Салаты",
        "image": "https://images.unsplash.com/photo-1611599538835-b52c9f289f4a?w=500",
    },
    {
        "name": "Бефстроганов",
        "description": "Нежная говядина в сливочном соусе с грибами",
        "price": Decimal("16.99"),
        "category": "Основные блюда",
        "image": "https://images.unsplash.com/photo-1504674900247-0877df9cc836?w=500",
    },
    {
        "name": "Блины",
        "description": "Тонкие блины с различными начинками на выбор",
        "price": Decimal("9.99"),
        "category": "Десерты",
        "image": "https://images.unsplash.com/photo-1519676867240-f03562e64548?w=500",
    },
    {
        "name": "Шашлык",
        "description": "Маринованное мясо на углях с овощами и соусом",
        "price": Decimal("18.99"),
        "category": "Основные блюда",
        "image": "https://images.unsplash.com/photo-1544025162-d76694265947?w=500",
    },
    {
        "name": "Селёдка под шубой",
        "description": "Слоеный салат с сельдью, овощами и майонезом",
        "price": Decimal("8.99"),
        "category": "Салаты",
        "image": "https://images.unsplash.com/photo-1614777986387-015c2a89b696?w=500",
    },
    {
        "name": "Медовик",
        "description": "Многослойный медовый торт со сметанным кремом",
        "price": Decimal("6.99"),
        "category": "Десерты",
        "image": "https://images.unsplash.com/photo-1571115177098-24ec42ed204d?w=500",
    },
]


class MenuCatalog:
    """Create and read menu items."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list(self, category: Optional[str] = None) -> list[MenuItem]:
        """Return all items, or only those in ``category`` when given."""
        query = select(MenuItem).order_by(MenuItem.id)
        if category:
            query = query.where(MenuItem.category == category)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get(self, menu_item_id: int) -> Optional[MenuItem]:
        return await self.db.get(MenuItem, menu_item_id)

    async def add(
        self,
        name: str,
        description: str,
        price: Decimal,
        category: str,
        image: Optional[str] = None,
    ) -> MenuItem:
        """Insert a catalog entry. Names are not required to be unique."""
        item = MenuItem(
            name=name,
            description=description,
            price=price,
            category=category,
            image=image,
        )
        self.db.add(item)
        await self.db.commit()
        await self.db.refresh(item)

        logger.info(f"Menu item #{item.id} added: {item.name} ({item.price})")
        return item

    async def seed_demo_data(self) -> int:
        """
        Populate an empty catalog with the demo dishes.

        Returns:
            Number of items inserted (0 when the catalog already had items)
        """
        count_result = await self.db.execute(select(func.count(MenuItem.id)))
        existing = count_result.scalar() or 0
        if existing:
            logger.info(f"Demo seed skipped: catalog already has {existing} items")
            return 0

        self.db.add_all(MenuItem(**item) for item in DEMO_MENU)
        await self.db.commit()

        logger.info(f"Demo seed inserted {len(DEMO_MENU)} menu items")
        return len(DEMO_MENU)
