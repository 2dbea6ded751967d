import abc
import logging
from collections import defaultdict
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from allocation.adapters.tables import allocations, batches, order_lines
from allocation.domain import models

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    pass


class BatchNotFound(RepositoryError):
    pass


class OrderLineNotFound(RepositoryError):
    pass


class IntegrityViolation(RepositoryError):
    pass


@contextmanager
def translate_errors(action: str) -> Iterator[None]:
    """Re-raise database driver failures as repository errors."""
    try:
        yield
    except IntegrityError as e:
        raise IntegrityViolation(f"Integrity violation while trying to {action}") from e
    except SQLAlchemyError as e:
        raise RepositoryError(f"Failed to {action}") from e


class AbstractRepository(abc.ABC):
    @abc.abstractmethod
    async def add_batch(self, batch: models.Batch) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def add_order_line(self, line: models.OrderLine) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def record_allocation(self, line: models.OrderLine, reference: models.Reference) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def get_batch(self, reference: models.Reference) -> models.Batch:
        raise NotImplementedError

    @abc.abstractmethod
    async def get_all_batches(self, sku: models.Sku | None = None) -> list[models.Batch]:
        raise NotImplementedError


class SqlAlchemyRepository(AbstractRepository):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add_batch(self, batch: models.Batch) -> None:
        with translate_errors(f"add batch {batch.reference}"):
            result = await self._session.execute(
                sa.insert(batches)
                .values(
                    reference=batch.reference,
                    sku=batch.sku,
                    purchased_quantity=batch.purchased_quantity,
                    eta=batch.eta,
                )
                .returning(batches.c.id)
            )
            batch_id = result.scalar_one()
            for line in batch.allocations:
                line_id = await self._line_id(line)
                if line_id is None:
                    line_id = await self._insert_line(line)
                await self._insert_allocation(line_id, batch_id)
        logger.debug("Added batch %s with %d allocations", batch.reference, len(batch.allocations))

    async def add_order_line(self, line: models.OrderLine) -> None:
        with translate_errors(f"add order line {line.order_id}/{line.sku}"):
            await self._insert_line(line)
        logger.debug("Added order line %s/%s", line.order_id, line.sku)

    async def record_allocation(self, line: models.OrderLine, reference: models.Reference) -> None:
        with translate_errors(f"allocate order line {line.order_id} to batch {reference}"):
            batch_id = await self._batch_id(reference)
            line_id = await self._line_id(line)
            if line_id is None:
                raise OrderLineNotFound(f"Order line {line.order_id}/{line.sku} not found")
            await self._insert_allocation(line_id, batch_id)
        logger.debug("Recorded allocation of %s to %s", line.order_id, reference)

    async def get_batch(self, reference: models.Reference) -> models.Batch:
        with translate_errors(f"get batch {reference}"):
            result = await self._session.execute(sa.select(batches).where(batches.c.reference == reference))
            row = result.one_or_none()
            if row is None:
                raise BatchNotFound(f"Batch {reference} not found")
            [batch] = await self._load([row])
        return batch

    async def get_all_batches(self, sku: models.Sku | None = None) -> list[models.Batch]:
        query = sa.select(batches).order_by(batches.c.id)
        if sku is not None:
            # the sku's batch rows stay locked until the transaction ends
            query = query.where(batches.c.sku == sku).with_for_update()
        with translate_errors("list batches"):
            result = await self._session.execute(query)
            return await self._load(result.all())

    async def _load(self, rows: Sequence[sa.Row]) -> list[models.Batch]:
        if not rows:
            return []
        result = await self._session.execute(
            sa.select(
                allocations.c.batch_id,
                order_lines.c.order_id,
                order_lines.c.sku,
                order_lines.c.quantity,
            )
            .select_from(allocations.join(order_lines, allocations.c.order_line_id == order_lines.c.id))
            .where(allocations.c.batch_id.in_([r.id for r in rows]))
        )
        lines: dict[int, list[models.OrderLine]] = defaultdict(list)
        for r in result:
            lines[r.batch_id].append(
                models.OrderLine(
                    order_id=models.OrderId(r.order_id),
                    sku=models.Sku(r.sku),
                    quantity=models.Quantity(r.quantity),
                )
            )
        return [
            models.Batch(
                reference=models.Reference(r.reference),
                sku=models.Sku(r.sku),
                purchased_quantity=models.Quantity(r.purchased_quantity),
                eta=r.eta,
                allocations=lines[r.id],
            )
            for r in rows
        ]

    async def _batch_id(self, reference: models.Reference) -> int:
        result = await self._session.execute(sa.select(batches.c.id).where(batches.c.reference == reference))
        batch_id = result.scalar_one_or_none()
        if batch_id is None:
            raise BatchNotFound(f"Batch {reference} not found")
        return batch_id

    async def _line_id(self, line: models.OrderLine) -> int | None:
        result = await self._session.execute(
            sa.select(order_lines.c.id).where(
                order_lines.c.order_id == line.order_id,
                order_lines.c.sku == line.sku,
                order_lines.c.quantity == line.quantity,
            )
        )
        return result.scalar_one_or_none()

    async def _insert_line(self, line: models.OrderLine) -> int:
        result = await self._session.execute(
            sa.insert(order_lines)
            .values(order_id=line.order_id, sku=line.sku, quantity=line.quantity)
            .returning(order_lines.c.id)
        )
        return result.scalar_one()

    async def _insert_allocation(self, line_id: int, batch_id: int) -> None:
        await self._session.execute(sa.insert(allocations).values(order_line_id=line_id, batch_id=batch_id))
