"""asyncpg-backed repositories"""
from .orders import OrderRepository
from .riders import RiderRepository
from .students import StudentRepository
from .users import UserRepository
from .vendors import VendorRepository

__all__ = [
    'OrderRepository',
    'RiderRepository',
    'StudentRepository',
    'UserRepository',
    'VendorRepository',
]
