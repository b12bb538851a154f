# campus_dispatch/utils/identifiers.py
import secrets
import time

def generate_order_number() -> str:
    """Human readable order number, e.g. ORD-1760860800-042"""
    return f"ORD-{int(time.time())}-{secrets.randbelow(1000):03d}"

def generate_transaction_id() -> str:
    """Opaque id for the pending payment record"""
    return f"TXN-{time.time_ns()}-{secrets.randbelow(10000):04d}"
