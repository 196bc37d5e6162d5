"""Order model as returned by the order lookup collaborator."""

from decimal import Decimal

from pydantic import BaseModel, Field


class OrderInfo(BaseModel):
    """The slice of an order the dispute engine needs."""

    order_id: str = Field(description="Unique order identifier")
    order_no: str = Field(description="Order number shown to users")
    buyer_id: str = Field(description="Buying party")
    seller_id: str = Field(description="Selling party")
    amount: Decimal | None = Field(default=None, description="Order total")
    currency: str = Field(default="USD", description="Currency code")

    def is_party(self, user_id: str) -> bool:
        return user_id in (self.buyer_id, self.seller_id)
