"""Product services delegating to the product repository."""

import logging

from bson import ObjectId

from shopping_center.config import DbSettings
from shopping_center.infrastructure.repository import AsyncMongoRepository

from .models import Product

logger = logging.getLogger(__name__)


class ProductServiceBase:
    """Delegation boundary between callers and the product repository.

    Subclasses override get_all() to add filtering without changing its
    shape.
    """

    def __init__(self, repository: AsyncMongoRepository[Product]):
        self._repository = repository

    @property
    def repository(self) -> AsyncMongoRepository[Product]:
        return self._repository

    async def get_all(self) -> list[Product]:
        return await self._repository.get_all()

    async def get_by_id(self, id: str | ObjectId) -> Product | None:
        return await self._repository.find_by_id(id)


class ProductService(ProductServiceBase):
    """Default product service."""

    pass


def create_product_service(settings: DbSettings) -> ProductService:
    """Factory function to create a ProductService with its own repository."""
    repository = AsyncMongoRepository(Product, settings)
    logger.info("Initialized ProductService")
    return ProductService(repository)
