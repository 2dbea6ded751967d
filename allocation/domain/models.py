from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from typing import NewType

Quantity = NewType("Quantity", int)
Sku = NewType("Sku", str)
OrderId = NewType("OrderId", str)
Reference = NewType("Reference", str)


class OutOfStock(Exception):
    pass


def allocate(line: OrderLine, batches: list[Batch]) -> Reference:
    """Allocate ``line`` to the first batch that can take it.

    ``batches`` is sorted in place by preference: warehouse stock first, then
    shipments by ETA. Nothing is mutated when no batch can take the line.
    """
    batches.sort()
    try:
        batch = next(b for b in batches if b.can_allocate(line))
    except StopIteration:
        raise OutOfStock(f"Out of stock for sku {line.sku}") from None
    batch.allocate(line)
    return batch.reference


@dataclass(frozen=True)
class OrderLine:
    order_id: OrderId
    sku: Sku
    quantity: Quantity


class Batch:
    def __init__(
        self,
        reference: Reference,
        sku: Sku,
        purchased_quantity: Quantity,
        eta: date | None = None,
        allocations: Iterable[OrderLine] = (),
    ) -> None:
        self.reference = reference
        self.sku = sku
        self.eta = eta
        self.purchased_quantity = purchased_quantity
        # restores persisted state, new batches start empty
        self._allocations: set[OrderLine] = set(allocations)

    def __repr__(self) -> str:
        return f"<Batch {self.reference}>"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Batch):
            return False
        return other.reference == self.reference

    def __hash__(self) -> int:
        return hash(self.reference)

    # allocation preference only, equality stays by reference
    def __lt__(self, other: Batch) -> bool:
        return self._preference_key < other._preference_key

    def __gt__(self, other: Batch) -> bool:
        return self._preference_key > other._preference_key

    @property
    def _preference_key(self) -> tuple[int, date, str]:
        if self.eta is None:
            return (0, date.min, self.reference)
        return (1, self.eta, self.reference)

    @property
    def allocations(self) -> frozenset[OrderLine]:
        return frozenset(self._allocations)

    def allocate(self, line: OrderLine) -> None:
        if self.can_allocate(line):
            self._allocations.add(line)

    def deallocate(self, line: OrderLine) -> None:
        if line in self._allocations:
            self._allocations.remove(line)

    @property
    def allocated_quantity(self) -> int:
        return sum(line.quantity for line in self._allocations)

    @property
    def available_quantity(self) -> int:
        return self.purchased_quantity - self.allocated_quantity

    def can_allocate(self, line: OrderLine) -> bool:
        return self.sku == line.sku and self.available_quantity >= line.quantity
