"""Persistence, geo index and caches"""
from .active_order_cache import ActiveOrderCache
from .database import Database
from .geo_index import GeoIndex, InMemoryGeoIndex, PostgresGeoIndex, create_geo_index

__all__ = [
    'ActiveOrderCache',
    'Database',
    'GeoIndex',
    'InMemoryGeoIndex',
    'PostgresGeoIndex',
    'create_geo_index',
]
