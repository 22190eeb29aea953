"""
External service adapters.
"""

from .backend_client import BackendClient, AuthResult, ChatReply

__all__ = ['BackendClient', 'AuthResult', 'ChatReply']
