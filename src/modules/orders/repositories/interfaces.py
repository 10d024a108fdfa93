"""Order repository interface.

Extends ``IRepository[Order]`` with the methods the rental Order aggregate
needs: atomic creation with items, locked reads for status changes, worker
assignment, status history tracking and idempotency-key look-up.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import date
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderStatusHistory
    from modules.workers.models import Worker


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the rental Order aggregate root."""

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` must include ``client_name``, ``rental_start_date``,
        ``rental_end_date``, ``default_chargeable_days`` and ``items`` (list
        of dicts with ``product_name``, ``quantity``, ``unit_price``);
        optionally ``idempotency_key`` and ``notes``.
        """

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with prefetched items, workers and history."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order under a row-level lock."""

    @abstractmethod
    def set_workers(self, order: Order, workers: Iterable[Worker]) -> None:
        """Replace the order's worker set."""

    @abstractmethod
    def add_history(
        self,
        order_id: UUID,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
        actual_date: Optional[date] = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""

    @abstractmethod
    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        """Retrieve an order by its idempotency key."""
