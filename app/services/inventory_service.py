"""Stock changes for product variants, each recorded as a StockTransaction."""
import logging
from typing import Optional

from app.models import Product, ProductVariant, StockTransaction, StockTransactionType
from app.exceptions import BusinessLogicError, NotFoundError, InsufficientStockError

logger = logging.getLogger(__name__)

# Types an admin may pick on the inventory screen; 'sale' is written by checkout
MANUAL_TRANSACTION_TYPES = (
    StockTransactionType.RESTOCK.value,
    StockTransactionType.ADJUSTMENT.value,
    StockTransactionType.RETURN.value,
)


def record_stock_change(session, variant: ProductVariant, quantity_change: int,
                        transaction_type: str, reference: Optional[str] = None,
                        notes: Optional[str] = None) -> StockTransaction:
    """
    Apply a stock delta to a variant and log it. Does not commit.

    Raises:
        InsufficientStockError: if the change would drive stock below zero
    """
    current = variant.stock_quantity or 0
    new_quantity = current + quantity_change
    if new_quantity < 0:
        raise InsufficientStockError(variant.product.name if variant.product else variant.sku,
                                     -quantity_change, current)

    variant.stock_quantity = new_quantity
    movement = StockTransaction(
        variant_id=variant.id,
        quantity_change=quantity_change,
        resulting_quantity=new_quantity,
        transaction_type=transaction_type,
        reference=reference,
        notes=notes,
    )
    session.add(movement)
    return movement


def adjust_stock(session, variant_id: int, quantity_change: int, transaction_type: str,
                 notes: Optional[str] = None) -> StockTransaction:
    """
    Manual stock adjustment from the admin inventory screen.

    Restock and return must add stock; adjustment may go either way.
    """
    if transaction_type not in MANUAL_TRANSACTION_TYPES:
        raise BusinessLogicError(f'Invalid transaction type: {transaction_type}')
    if quantity_change == 0:
        raise BusinessLogicError('Quantity change cannot be zero')
    if transaction_type != StockTransactionType.ADJUSTMENT.value and quantity_change < 0:
        raise BusinessLogicError(f'A {transaction_type} must add stock')

    try:
        variant = (
            session.query(ProductVariant)
            .filter(ProductVariant.id == variant_id)
            .with_for_update()
            .first()
        )
        if not variant:
            raise NotFoundError(f'Variant {variant_id} not found')

        movement = record_stock_change(session, variant, quantity_change, transaction_type, notes=notes)
        session.commit()
        logger.info(f"[INVENTORY] {variant.sku}: {quantity_change:+d} ({transaction_type}) -> {variant.stock_quantity}")
        return movement
    except (BusinessLogicError, NotFoundError):
        session.rollback()
        raise


def list_inventory(session, search: str = '', low_stock_only: bool = False) -> list:
    """Variants ordered by stock ascending, optionally only those at or under threshold."""
    query = session.query(ProductVariant).join(Product)
    if search:
        term = f"%{search[:100]}%"
        query = query.filter(
            (ProductVariant.sku.ilike(term)) | (ProductVariant.name.ilike(term)) | (Product.name.ilike(term))
        )
    if low_stock_only:
        query = query.filter(ProductVariant.stock_quantity <= ProductVariant.low_stock_threshold)
    return query.order_by(ProductVariant.stock_quantity.asc(), ProductVariant.id.asc()).all()
