"""FinanceTracker Pro — financial dashboard backend."""

__version__ = "0.1.0"
