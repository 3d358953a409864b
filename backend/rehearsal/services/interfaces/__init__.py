"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .transport import MessageTransport

__all__ = ['MessageTransport']
