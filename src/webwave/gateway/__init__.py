"""Remote resource gateway - object storage, records table and auth.

The Supabase implementation lives in ``webwave.gateway.supabase`` and is
imported explicitly by the entry points that need it.
"""

from .contracts import AuthGateway, AuthStateCallback, ObjectStorage, RecordStore
from .errors import AuthError, DatabaseError, GatewayError, StorageError

__all__ = [
    "AuthGateway",
    "AuthStateCallback",
    "ObjectStorage",
    "RecordStore",
    "AuthError",
    "DatabaseError",
    "GatewayError",
    "StorageError",
]
