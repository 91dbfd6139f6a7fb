"""
Collections backed by remote store structures.
"""

from .managed_set import ManagedSet

__all__ = ["ManagedSet"]
