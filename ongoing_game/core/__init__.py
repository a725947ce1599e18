"""Core infrastructure module.

This module exports core utilities used across features.
Never imports from features - only from external libraries.
"""

from .config import AppConfig, get_config, get_global_config
from .cancellation import CancellationToken, GenerationController
from .cache import LRUCache, SourcedCache, DEFAULT_CAPACITY
from .enums import (
    DataCategory,
    DataSource,
    LoadingPriority,
    LoadingState,
    QueryPhase,
    TagPreference,
    SAFE_TAGS,
    ALL_TAG,
    EMPTY_PUUID,
)
from .exceptions import (
    OngoingGameError,
    TaskAbortedError,
    ClientAPIError,
    BadRequestError,
    AuthenticationError,
    ForbiddenError,
    NotFoundError,
    RateLimitError,
    ServiceUnavailableError,
    is_not_found,
)
from .logging import setup_logging, bind_generation
from .queue import PriorityTaskQueue, TaskStatus
from .reactive import BackgroundTasks, Debouncer, Observable, Reaction, shallow_equal

__all__ = [
    # Config
    "AppConfig",
    "get_config",
    "get_global_config",
    # Cancellation
    "CancellationToken",
    "GenerationController",
    # Cache
    "LRUCache",
    "SourcedCache",
    "DEFAULT_CAPACITY",
    # Enums
    "DataCategory",
    "DataSource",
    "LoadingPriority",
    "LoadingState",
    "QueryPhase",
    "TagPreference",
    "SAFE_TAGS",
    "ALL_TAG",
    "EMPTY_PUUID",
    # Exceptions
    "OngoingGameError",
    "TaskAbortedError",
    "ClientAPIError",
    "BadRequestError",
    "AuthenticationError",
    "ForbiddenError",
    "NotFoundError",
    "RateLimitError",
    "ServiceUnavailableError",
    "is_not_found",
    # Logging
    "setup_logging",
    "bind_generation",
    # Queue
    "PriorityTaskQueue",
    "TaskStatus",
    # Reactive
    "BackgroundTasks",
    "Debouncer",
    "Observable",
    "Reaction",
    "shallow_equal",
]
