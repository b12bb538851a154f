# campus_dispatch/config.py
import os
import logging
from decimal import Decimal
from pathlib import Path
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict
from typing import List

# Load environment variables
load_dotenv()

# Base directory of the project
BASE_DIR = Path(__file__).resolve().parent.parent


def _decimal_env(key: str, default: str) -> Decimal:
    return Decimal(os.getenv(key, default))


def _int_env(key: str, default: int) -> int:
    value = os.getenv(key, "")
    return int(value) if value.strip().lstrip("-").isdigit() else default


class Config:
    """Configuration settings for the dispatch service"""

    # Bot settings
    TELEGRAM_TOKEN: str = os.getenv("TELEGRAM_TOKEN", "")

    # Database settings
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")
    DB_POOL_MIN_SIZE: int = _int_env("DB_POOL_MIN_SIZE", 2)
    DB_POOL_MAX_SIZE: int = _int_env("DB_POOL_MAX_SIZE", 10)

    # Admin settings
    ADMIN_IDS: List[int] = [
        int(id_) for id_ in os.getenv("ADMIN_IDS", "").split(",")
        if id_.strip().isdigit()
    ]

    # Fee settings
    DELIVERY_FEE: Decimal = _decimal_env("DELIVERY_FEE", "2.50")
    SERVICE_FEE_RATE: Decimal = _decimal_env("SERVICE_FEE_RATE", "0.05")
    RIDER_EARNINGS_RATE: Decimal = _decimal_env("RIDER_EARNINGS_RATE", "0.80")
    DEFAULT_COMMISSION_RATE: Decimal = _decimal_env("DEFAULT_COMMISSION_RATE", "0.15")

    # Order settings
    ORDER_TIMEOUT_MINUTES: int = _int_env("ORDER_TIMEOUT_MINUTES", 30)
    MAX_ORDER_ITEMS: int = _int_env("MAX_ORDER_ITEMS", 50)
    MAX_ORDER_QUANTITY: int = _int_env("MAX_ORDER_QUANTITY", 10)
    ACTIVE_ORDER_TTL_MINUTES: int = _int_env("ACTIVE_ORDER_TTL_MINUTES", 30)

    # Dispatch settings
    DISPATCH_RADIUS_KM: float = float(os.getenv("DISPATCH_RADIUS_KM", "10"))
    DISPATCH_CANDIDATE_LIMIT: int = _int_env("DISPATCH_CANDIDATE_LIMIT", 10)
    GEO_INDEX_BACKEND: str = os.getenv("GEO_INDEX_BACKEND", "postgres")

    # Other settings
    TIMEZONE: str = os.getenv("TZ", "UTC")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Paths
    LOG_DIR = BASE_DIR / "logs"

    @classmethod
    def validate(cls):
        """Check the settings the running service cannot start without"""
        if not cls.TELEGRAM_TOKEN:
            raise ValueError("No TELEGRAM_TOKEN set in environment")
        if not cls.DATABASE_URL:
            raise ValueError("No DATABASE_URL set in environment")
        if cls.GEO_INDEX_BACKEND not in ("postgres", "memory"):
            raise ValueError(f"Unknown GEO_INDEX_BACKEND: {cls.GEO_INDEX_BACKEND}")


class PlatformConfig(BaseModel):
    """Fee and dispatch constants handed to the core services"""
    delivery_fee: Decimal = Decimal("2.50")
    service_fee_rate: Decimal = Decimal("0.05")
    rider_earnings_rate: Decimal = Decimal("0.80")
    default_commission_rate: Decimal = Decimal("0.15")
    max_order_items: int = 50
    max_order_quantity: int = 10
    dispatch_radius_km: float = 10.0
    dispatch_candidate_limit: int = 10
    active_order_ttl_minutes: int = 30
    # Loaded for completeness; no timeout behaviour is attached to it yet.
    order_timeout_minutes: int = 30

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_config(cls) -> "PlatformConfig":
        return cls(
            delivery_fee=Config.DELIVERY_FEE,
            service_fee_rate=Config.SERVICE_FEE_RATE,
            rider_earnings_rate=Config.RIDER_EARNINGS_RATE,
            default_commission_rate=Config.DEFAULT_COMMISSION_RATE,
            max_order_items=Config.MAX_ORDER_ITEMS,
            max_order_quantity=Config.MAX_ORDER_QUANTITY,
            dispatch_radius_km=Config.DISPATCH_RADIUS_KM,
            dispatch_candidate_limit=Config.DISPATCH_CANDIDATE_LIMIT,
            active_order_ttl_minutes=Config.ACTIVE_ORDER_TTL_MINUTES,
            order_timeout_minutes=Config.ORDER_TIMEOUT_MINUTES,
        )


def setup_logging():
    """Configure logging settings"""
    log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    Config.LOG_DIR.mkdir(exist_ok=True)
    log_file = Config.LOG_DIR / "dispatch.log"

    logging.basicConfig(
        level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
        format=log_format,
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )
