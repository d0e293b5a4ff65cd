"""
utils/time_utils.py

Purpose: Time and expiry helpers

- Reset-token expiry calculation
"""

from datetime import datetime, timedelta


def utcnow() -> datetime:
    """
    Naive UTC now, matching what the database driver returns.
    """
    return datetime.utcnow()


def calculate_expiry(issued_at: datetime, validity_minutes: int) -> datetime:
    """
    Calculates an expiry timestamp from the moment of issuance.
    """
    return issued_at + timedelta(minutes=validity_minutes)
