"""
Monitoring infrastructure - structured logging and error tracking.
"""

from .logging_service import (
    get_logger,
    initialize_logging,
    get_error_tracker,
    log_backend_call,
    log_user_interaction,
    log_conversation_event,
    ErrorTracker,
    StructuredFormatter
)

__all__ = [
    'get_logger',
    'initialize_logging',
    'get_error_tracker',
    'log_backend_call',
    'log_user_interaction',
    'log_conversation_event',
    'ErrorTracker',
    'StructuredFormatter'
]
