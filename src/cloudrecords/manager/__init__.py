"""
Manager

Connection state shared by DAOs: which container, which partition.
"""

from cloudrecords.manager.connection import DEFAULT_CONTAINER, ConnectionManager

__all__ = ["DEFAULT_CONTAINER", "ConnectionManager"]
