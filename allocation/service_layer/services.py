import logging
from datetime import date

from allocation.domain import models
from allocation.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


class InvalidSku(Exception):
    pass


class DuplicateOrderLine(Exception):
    pass


async def add_batch(
    reference: str,
    sku: str,
    purchased_quantity: int,
    eta: date | None,
    uow: AbstractUnitOfWork,
) -> None:
    batch = models.Batch(
        models.Reference(reference), models.Sku(sku), models.Quantity(purchased_quantity), eta
    )
    async with uow:
        await uow.batches.add_batch(batch)
        await uow.commit()
    logger.info("Added batch %s of %d %s", reference, purchased_quantity, sku)


async def allocate(order_id: str, sku: str, quantity: int, uow: AbstractUnitOfWork) -> models.Reference:
    line = models.OrderLine(models.OrderId(order_id), models.Sku(sku), models.Quantity(quantity))
    async with uow:
        batches = await uow.batches.get_all_batches(line.sku)
        if not batches:
            logger.warning("Allocation of order %s rejected: invalid sku %s", order_id, sku)
            raise InvalidSku(f"Invalid sku {line.sku}")
        allocated = next((b for b in batches if line in b.allocations), None)
        if allocated is not None:
            return allocated.reference
        if any(existing.order_id == line.order_id for b in batches for existing in b.allocations):
            logger.warning("Allocation of order %s rejected: sku %s already allocated", order_id, sku)
            raise DuplicateOrderLine(f"Order {line.order_id} already has a line for sku {line.sku}")
        try:
            reference = models.allocate(line, batches)
        except models.OutOfStock:
            logger.warning("Out of stock for sku %s (order %s, quantity %d)", sku, order_id, quantity)
            raise
        await uow.batches.add_order_line(line)
        await uow.batches.record_allocation(line, reference)
        await uow.commit()
    logger.info("Allocated order %s (%d %s) to batch %s", order_id, quantity, sku, reference)
    return reference


async def get_batch(reference: str, uow: AbstractUnitOfWork) -> models.Batch:
    async with uow:
        return await uow.batches.get_batch(models.Reference(reference))
