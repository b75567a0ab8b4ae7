"""Product domain: documents and services."""

from .models import Product
from .services import ProductService, ProductServiceBase, create_product_service

__all__ = [
    "Product",
    "ProductService",
    "ProductServiceBase",
    "create_product_service",
]
