from .icon_cache import IconCache
from .fetch_scheduler import FetchScheduler, IconRequest, QueueEntry, SharedOutcome
from .icon_binding import IconBinder, IconBinding

__all__ = [
    'IconCache',
    'FetchScheduler', 'IconRequest', 'QueueEntry', 'SharedOutcome',
    'IconBinder', 'IconBinding',
]
