from __future__ import annotations

import abc
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from allocation.adapters.db import DB
from allocation.adapters.repository import AbstractRepository, RepositoryError, SqlAlchemyRepository


class AbstractUnitOfWork(abc.ABC):
    async def __aenter__(self) -> AbstractUnitOfWork:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.rollback()

    @property
    @abc.abstractmethod
    def batches(self) -> AbstractRepository:
        raise NotImplementedError

    @abc.abstractmethod
    async def commit(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def rollback(self) -> None:
        raise NotImplementedError


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    def __init__(self, db: DB) -> None:
        self._db = db
        self._session: AsyncSession | None = None
        self._batches: SqlAlchemyRepository | None = None

    @property
    def batches(self) -> AbstractRepository:
        if self._batches is None:
            raise RuntimeError("Unit of work is not started")
        return self._batches

    async def __aenter__(self) -> AbstractUnitOfWork:
        self._session = self._db.new_session()
        self._batches = SqlAlchemyRepository(self._session)
        return await super().__aenter__()

    async def __aexit__(self, *args: Any) -> None:
        try:
            await super().__aexit__(*args)
        finally:
            await self._session.close()
            self._session = None
            self._batches = None

    async def commit(self) -> None:
        try:
            await self._session.commit()
        except SQLAlchemyError as e:
            raise RepositoryError("Failed to commit") from e

    async def rollback(self) -> None:
        await self._session.rollback()
