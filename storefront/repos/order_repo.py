# storefront/repos/order_repo.py
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.data.models.order import OrderModel


class OrderRepo:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return order

    async def get_order(self, order_id: int) -> OrderModel | None:
        result = await self.db.execute(select(OrderModel).where(OrderModel.id == order_id))
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: str) -> list[OrderModel]:
        result = await self.db.execute(
            select(OrderModel)
            .where(OrderModel.user_id == user_id)
            .order_by(OrderModel.order_date.desc())
        )
        return list(result.scalars().all())
