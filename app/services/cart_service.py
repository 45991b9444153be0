"""
Session-backed shopping cart.

The cart lives in the Flask session as ``session['cart'] = {'items': [...]}``.
Decimal prices are stored as strings so the session stays JSON-serializable.
"""
import logging
import time
from decimal import Decimal
from typing import Optional

from flask import session

from app.exceptions import BusinessLogicError, InsufficientStockError, NotFoundError

logger = logging.getLogger(__name__)

CART_SESSION_KEY = 'cart'
ATTRIBUTE_KEYS = ('material', 'gemstone', 'size', 'gauge')


def _clean_attributes(attributes: Optional[dict]) -> dict:
    attributes = attributes or {}
    return {k: attributes[k] for k in ATTRIBUTE_KEYS if attributes.get(k)}


class Cart:
    """
    Cart line items plus derived subtotal and item count.

    Lines with the same product, variant and attributes merge into one.
    """

    def __init__(self, items: Optional[list] = None):
        self.items = [dict(item) for item in (items or [])]

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> 'Cart':
        return cls((data or {}).get('items', []))

    def to_dict(self) -> dict:
        return {'items': [dict(item) for item in self.items]}

    def _new_item_id(self, variant_id) -> str:
        stamp = int(time.time() * 1000)
        existing = {item['id'] for item in self.items}
        item_id = f"{variant_id}-{stamp}"
        while item_id in existing:
            stamp += 1
            item_id = f"{variant_id}-{stamp}"
        return item_id

    def find(self, item_id: str) -> Optional[dict]:
        for item in self.items:
            if item['id'] == item_id:
                return item
        return None

    def add_item(
        self,
        product_id: int,
        variant_id: int,
        name: str,
        price,
        quantity: int = 1,
        image: str = '',
        attributes: Optional[dict] = None,
        variant_name: str = '',
    ) -> dict:
        """
        Add a line, merging into an existing line with the same
        product, variant and attributes.

        Raises:
            BusinessLogicError: if quantity is not positive
        """
        if quantity <= 0:
            raise BusinessLogicError('Quantity must be greater than 0')

        attributes = _clean_attributes(attributes)
        for item in self.items:
            if (item['product_id'] == product_id
                    and item['variant_id'] == variant_id
                    and item.get('attributes', {}) == attributes):
                item['quantity'] += quantity
                return item

        item = {
            'id': self._new_item_id(variant_id),
            'product_id': product_id,
            'variant_id': variant_id,
            'name': name,
            'variant_name': variant_name,
            'price': str(Decimal(str(price)).quantize(Decimal('0.01'))),
            'quantity': quantity,
            'image': image or '',
            'attributes': attributes,
        }
        self.items.append(item)
        return item

    def update_quantity(self, item_id: str, quantity: int) -> None:
        """Set a line's quantity; zero or less removes the line."""
        if quantity <= 0:
            self.remove_item(item_id)
            return
        item = self.find(item_id)
        if item is None:
            raise NotFoundError('Cart item not found')
        item['quantity'] = quantity

    def remove_item(self, item_id: str) -> None:
        self.items = [item for item in self.items if item['id'] != item_id]

    def clear(self) -> None:
        self.items = []

    @property
    def subtotal(self) -> Decimal:
        return sum(
            (Decimal(item['price']) * item['quantity'] for item in self.items),
            Decimal('0.00'),
        )

    @property
    def item_count(self) -> int:
        return sum(item['quantity'] for item in self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def lines(self) -> list:
        """Items with Decimal price and line total, for templates."""
        result = []
        for item in self.items:
            price = Decimal(item['price'])
            result.append({**item, 'price': price, 'line_total': price * item['quantity']})
        return result


def get_cart() -> Cart:
    """Load the cart from the session."""
    return Cart.from_dict(session.get(CART_SESSION_KEY))


def save_cart(cart: Cart) -> None:
    """Persist the cart back into the session."""
    session[CART_SESSION_KEY] = cart.to_dict()
    session.modified = True


def clear_cart() -> None:
    session.pop(CART_SESSION_KEY, None)


def add_variant_to_cart(cart: Cart, variant, quantity: int, attributes: Optional[dict] = None) -> dict:
    """
    Add a ProductVariant to the cart after checking it is sellable.

    Raises:
        NotFoundError: if the variant or its product is inactive
        InsufficientStockError: if the cart would exceed stock on hand
    """
    if variant is None or not variant.is_active or not variant.product.is_active:
        raise NotFoundError('Product not available')

    already = sum(
        item['quantity'] for item in cart.items if item['variant_id'] == variant.id
    )
    if already + quantity > (variant.stock_quantity or 0):
        raise InsufficientStockError(variant.product.name, already + quantity, variant.stock_quantity or 0)

    # Variant attributes are the defaults; explicit customisation wins
    merged = {**variant.attributes, **_clean_attributes(attributes)}
    item = cart.add_item(
        product_id=variant.product_id,
        variant_id=variant.id,
        name=variant.product.name,
        variant_name=variant.name,
        price=variant.price,
        quantity=quantity,
        image=variant.product.image_url or '',
        attributes=merged,
    )
    logger.info(f"[CART] Added variant {variant.sku} x{quantity}")
    return item
