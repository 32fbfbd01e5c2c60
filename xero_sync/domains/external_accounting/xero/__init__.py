from .data_service import XeroApiClient

__all__ = ["XeroApiClient"]
