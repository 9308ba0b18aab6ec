# typed records for API payloads, validated on the way in

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class Product(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    description: str
    price: float = Field(ge=0)
    category: str
    quantity: int = Field(ge=0)  # stock on hand
    image_url: Optional[str] = None

    @property
    def in_stock(self) -> bool:
        return self.quantity > 0


class CartItem(BaseModel):
    """
    One cart line. `quantity` is not checked against product.quantity here;
    the server owns that rule and the snapshot may be stale.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    product: Product
    quantity: int = Field(gt=0)
    created_at: datetime = Field(alias="createdAt")

    @property
    def line_total(self) -> float:
        return round(self.product.price * self.quantity, 2)


class AddToCartRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: int = Field(alias="productId")
    quantity: int = Field(default=1, ge=1)


class CreateProductRequest(BaseModel):
    """Body of POST /products; also the admin form's validation rules."""

    name: str = Field(min_length=2)
    description: str = Field(min_length=10)
    price: float = Field(ge=0)
    category: str = Field(min_length=2)
    quantity: int = Field(ge=0)
    image_url: Optional[str] = None

    def with_id(self, product_id: int) -> Product:
        return Product(id=product_id, **self.model_dump())


ProductList = TypeAdapter(List[Product])
CartItemList = TypeAdapter(List[CartItem])
