import functools

from fastapi import Depends

from allocation.adapters.db import DB
from allocation.config import get_config
from allocation.service_layer.unit_of_work import AbstractUnitOfWork, SqlAlchemyUnitOfWork


@functools.lru_cache
def db() -> DB:
    config = get_config()
    return DB(config.DB_DSN, echo=config.DB_ECHO)


def uow(db: DB = Depends(db)) -> AbstractUnitOfWork:
    return SqlAlchemyUnitOfWork(db)
