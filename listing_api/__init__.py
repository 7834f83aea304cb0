"""
Property Catalog API: listing search, favorites and the admin back office.
"""

__version__ = "1.0.0"
