"""Catalogue reads, served through the process cache."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from delivery.cache import PRODUCTS_NAMESPACE, get_cache
from delivery.catalogue.product import Product
from delivery.errors import ProductNotFound


def get_product(product_id: str, cache=None) -> dict:
    cache = cache or get_cache()
    key = f"{PRODUCTS_NAMESPACE}{product_id}"

    cached = cache.get(key)
    if cached is not None:
        return cached

    try:
        product = current_domain.repository_for(Product).get(product_id)
    except ObjectNotFoundError:
        raise ProductNotFound(f"Product {product_id} not found") from None

    view = {
        "id": str(product.id),
        "name": product.name,
        "price": product.price,
        "stock": product.stock,
        "is_active": product.is_active,
    }
    cache.set(key, view)
    return view
