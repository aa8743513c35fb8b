"""Price data loading."""

from .price_loader import PriceLoader, PRICE_COLUMNS

__all__ = ['PriceLoader', 'PRICE_COLUMNS']
