"""
In-process client state: filter state bound to the address bar, the
paginated listing loader and the signed-in session store.
"""

from .filters import FilterState, Location, Navigator, parse_query_string, to_query_string
from .loader import ListingLoader
from .session import AuthSession, SessionStore

__all__ = [
    "FilterState",
    "Location",
    "Navigator",
    "parse_query_string",
    "to_query_string",
    "ListingLoader",
    "AuthSession",
    "SessionStore",
]
