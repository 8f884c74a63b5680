"""Project records, the synchronized cache and its refresh loop."""
from .cache import CacheSnapshot, SyncCache
from .records import ProjectRecord, parse_rows
from .scheduler import RefreshScheduler
from .summary import ProjectSummary, summarize, total_budget

__all__ = [
    'CacheSnapshot',
    'SyncCache',
    'ProjectRecord',
    'parse_rows',
    'RefreshScheduler',
    'ProjectSummary',
    'summarize',
    'total_budget',
]
