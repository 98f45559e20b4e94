from __future__ import annotations

from abc import ABC, abstractmethod

from core.domain.entities.fee_payment_entity import FeePaymentEntity
from core.domain.entities.purchase_entity import PurchaseEntity


class AuditRepository(ABC):
    """
    Repository interface for informational fee/purchase records.

    Records are keyed by event key; writing the same record twice is a no-op.
    """

    @abstractmethod
    async def record_fee_payment(self, fee: FeePaymentEntity) -> None: ...

    @abstractmethod
    async def record_purchase(self, purchase: PurchaseEntity) -> None: ...
