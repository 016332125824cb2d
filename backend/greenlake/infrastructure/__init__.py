"""
Infrastructure layer - external system integrations.
Keeps business logic clean from implementation details.
"""

from .redis_client import get_redis, close_redis
from .ledger_client import LedgerClient, get_ledger, close_ledger

__all__ = ['get_redis', 'close_redis', 'LedgerClient', 'get_ledger', 'close_ledger']
