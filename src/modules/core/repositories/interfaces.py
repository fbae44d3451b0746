"""Base repository contract shared by the product and order stores.

Services receive repositories through their constructors and never
touch the ORM themselves.  Every implementation follows the same rules:

* a missing entity is ``None``, never an exception;
* ``get_for_update`` holds a row lock until the caller's transaction ends;
* a write either lands completely or raises ``PersistenceError``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Optional, TypeVar

from django.db.models import QuerySet

T = TypeVar("T")


class IRepository(ABC, Generic[T]):
    """Lookup, locking and listing for one aggregate type ``T``."""

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[T]:
        """Plain read; ``None`` for unknown or malformed ids."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[T]:
        """Read under ``SELECT ... FOR UPDATE``."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        """Lazy queryset narrowed by *filters*."""

    @abstractmethod
    def save(self, entity: T) -> T:
        ...
