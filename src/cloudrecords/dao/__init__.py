"""
DAO

Typed CRUD access to records, one DAO per CloudObject type.
"""

from cloudrecords.dao.page import Page
from cloudrecords.dao.repository import DAO

__all__ = ["DAO", "Page"]
