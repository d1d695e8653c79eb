"""
Validation Package

Normalization of stored and imported data, and validation of user actions.
"""

from moneys_wisdom.validation.normalizer import (
    MalformedImport,
    normalize_app_data,
    normalize_ledger,
)
from moneys_wisdom.validation.validator import LedgerValidator

__all__ = [
    "LedgerValidator",
    "MalformedImport",
    "normalize_app_data",
    "normalize_ledger",
]
