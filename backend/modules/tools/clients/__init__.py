"""
HTTP clients for external data providers
"""
from .financial_datasets import FinancialDatasetsClient, FinancialDatasetsError

__all__ = ["FinancialDatasetsClient", "FinancialDatasetsError"]
