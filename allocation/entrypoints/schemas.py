from datetime import date

from pydantic import BaseModel

from allocation.domain import models


class BatchOut(BaseModel):
    reference: str
    sku: str
    purchased_quantity: int
    available_quantity: int
    eta: date | None = None

    @classmethod
    def from_domain(cls, batch: models.Batch) -> "BatchOut":
        return cls(
            reference=batch.reference,
            sku=batch.sku,
            purchased_quantity=batch.purchased_quantity,
            available_quantity=batch.available_quantity,
            eta=batch.eta,
        )
