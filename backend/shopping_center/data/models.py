"""Product document stored in the 'products' collection."""

from pydantic import Field

from shopping_center.infrastructure.models import Document, collection


@collection("products")
class Product(Document):
    """Catalog product."""

    name: str
    category: str = ""
    summary: str = ""
    description: str = ""
    image_file: str = ""
    price: float = Field(default=0.0, ge=0)
