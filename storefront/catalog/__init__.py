"""
Module 'catalog' (feature-first): chargeur résilient du catalogue.
Réunit schéma canonique, cache TTL, accès API/snapshot et service.
"""
from .cache import TTLCache, CacheEntry, make_cache_key
from .models import Pack, Product, normalize_record, normalize_collection
from .service import DataLoader

__all__ = [
    "TTLCache",
    "CacheEntry",
    "make_cache_key",
    "Pack",
    "Product",
    "normalize_record",
    "normalize_collection",
    "DataLoader",
]
