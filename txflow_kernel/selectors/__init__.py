"""Read-only selectors for the txflow kernel."""

from txflow_kernel.selectors.base import BaseSelector
from txflow_kernel.selectors.transaction_selector import TransactionSelector

__all__ = ["BaseSelector", "TransactionSelector"]
