from notecache.gateway.base import BackendGateway
from notecache.gateway.sqlite import SqliteGateway

__all__ = ["BackendGateway", "SqliteGateway"]
