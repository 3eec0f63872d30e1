"""
Catalog service - branch-scoped product list used by the POS cart.

Rows coming from the database (or the cache) are validated into immutable
CatalogProduct snapshots before the cart ever sees them.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Iterator, List, Optional

from sqlalchemy import or_

from branchpos.models import Product
from branchpos.exceptions import BusinessLogicError

logger = logging.getLogger(__name__)

CACHE_MODULE = 'catalog'


@dataclass(frozen=True)
class CatalogProduct:
    """Product as the point of sale sees it: price and a stock ceiling."""
    id: int
    name: str
    price: Decimal
    stock: int
    category: Optional[str] = None
    sku: Optional[str] = None

    @classmethod
    def from_model(cls, product: Product) -> 'CatalogProduct':
        return cls.from_dict({
            'id': product.id,
            'name': product.name,
            'price': product.price,
            'stock': product.stock_quantity,
            'category': product.category,
            'sku': product.sku,
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CatalogProduct':
        """
        Build a snapshot from a plain row.

        Negative stock is clamped to 0; a missing name or a bad price is
        rejected with BusinessLogicError.
        """
        try:
            product_id = int(data['id'])
            price = Decimal(str(data['price']))
            stock = int(data.get('stock') or 0)
        except (KeyError, TypeError, ValueError, InvalidOperation):
            raise BusinessLogicError(f"Invalid product row: {data!r}")

        name = (data.get('name') or '').strip()
        if not name:
            raise BusinessLogicError(f"Product {product_id} has no name")
        if price < 0:
            raise BusinessLogicError(f'Product "{name}" has a negative price')

        return cls(
            id=product_id,
            name=name,
            price=price,
            stock=max(stock, 0),
            category=data.get('category') or None,
            sku=data.get('sku') or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'price': self.price,
            'stock': self.stock,
            'category': self.category,
            'sku': self.sku,
        }


class Catalog:
    """Ordered, read-only collection of CatalogProduct keyed by id."""

    def __init__(self, products: Iterable[CatalogProduct] = ()):
        self._products: Dict[int, CatalogProduct] = {p.id: p for p in products}

    def get(self, product_id: int) -> Optional[CatalogProduct]:
        return self._products.get(product_id)

    def __contains__(self, product_id) -> bool:
        return product_id in self._products

    def __iter__(self) -> Iterator[CatalogProduct]:
        return iter(self._products.values())

    def __len__(self) -> int:
        return len(self._products)

    def search(self, term: str = '', category: str = '') -> List[CatalogProduct]:
        """Case-insensitive match on name or SKU, optionally within one category."""
        term = (term or '').strip().lower()[:100]
        results = []
        for product in self:
            if category and product.category != category:
                continue
            if term and term not in product.name.lower() and term not in (product.sku or '').lower():
                continue
            results.append(product)
        return results

    def categories(self) -> List[str]:
        return sorted({p.category for p in self if p.category})


def list_products(session, business_id: int, branch_id: Optional[int]) -> List[CatalogProduct]:
    """
    Active, in-stock products sellable at a branch (business-scoped).

    Branch-independent products (branch_id NULL) are included for every
    branch; without a branch only those are returned.
    """
    query = session.query(Product).filter(
        Product.business_id == business_id,
        Product.is_active == True,  # noqa: E712
        Product.stock_quantity > 0
    )
    if branch_id is None:
        query = query.filter(Product.branch_id.is_(None))
    else:
        query = query.filter(or_(Product.branch_id == branch_id, Product.branch_id.is_(None)))

    return [CatalogProduct.from_model(p) for p in query.order_by(Product.name, Product.id).all()]


def load_catalog(session, business_id: int, branch_id: Optional[int], cache=None, ttl: Optional[int] = None) -> Catalog:
    """Load the branch catalog, going through the cache when one is given."""
    if cache is None:
        return Catalog(list_products(session, business_id, branch_id))

    key = f"branch:{branch_id if branch_id is not None else 'shared'}"
    rows = cache.memoize(
        business_id, CACHE_MODULE, key,
        lambda: [p.to_dict() for p in list_products(session, business_id, branch_id)],
        ttl
    )
    return Catalog(CatalogProduct.from_dict(row) for row in rows)


def invalidate_catalog(cache, business_id: int) -> None:
    """Drop every cached catalog of a business (stock changed)."""
    if cache is None:
        return
    deleted = cache.invalidate_module(business_id, CACHE_MODULE)
    logger.debug(f"[CATALOG] business={business_id} invalidated {deleted} cached listings")
