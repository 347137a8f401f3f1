from sqlalchemy import Column, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from storefront.data.database import Base


class OrderItemModel(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)

    #kopia linii koszyka, nie referencja
    product_id = Column(String, nullable=False)
    name = Column(String, nullable=False, default="")
    image = Column(String, nullable=True)
    size = Column(String, nullable=False, default="")
    color = Column(String, nullable=False, default="")
    qty = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)

    order = relationship("OrderModel", back_populates="items")
