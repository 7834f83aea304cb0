"""
Database models for the Property Catalog API.
"""

from listing_api.models.property import Property, PropertyType, MarketingType, LegalCertificate
from listing_api.models.user import User, UserRole, BACK_OFFICE_ROLES
from listing_api.models.log_entry import LogEntry
from listing_api.models.identity import IdentityAccount

__all__ = [
    "Property",
    "PropertyType",
    "MarketingType",
    "LegalCertificate",
    "User",
    "UserRole",
    "BACK_OFFICE_ROLES",
    "LogEntry",
    "IdentityAccount",
]
