"""
Module 'cart' (feature-first): agrégat panier persistant.
"""
from .models import CartItem, validate_new_item, parse_stored_item
from .service import CartStore

__all__ = ["CartItem", "validate_new_item", "parse_stored_item", "CartStore"]
