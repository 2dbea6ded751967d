from datetime import date

from fastapi import Body, Depends, FastAPI, HTTPException

from allocation.adapters.repository import BatchNotFound, IntegrityViolation
from allocation.config import configure_logging, get_config
from allocation.domain.models import OutOfStock
from allocation.entrypoints import dependencies
from allocation.entrypoints.schemas import BatchOut
from allocation.service_layer import services
from allocation.service_layer.unit_of_work import AbstractUnitOfWork

configure_logging(get_config().LOG_LEVEL)

app = FastAPI()


@app.post("/batches", status_code=201)
async def add_batch(
    reference: str = Body(),
    sku: str = Body(),
    quantity: int = Body(gt=0),
    eta: date | None = Body(default=None),
    uow: AbstractUnitOfWork = Depends(dependencies.uow),
) -> dict[str, str]:
    try:
        await services.add_batch(reference, sku, quantity, eta, uow)
    except IntegrityViolation as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"reference": reference}


@app.post("/allocate", status_code=201)
async def allocate(
    order_id: str = Body(),
    sku: str = Body(),
    quantity: int = Body(gt=0),
    uow: AbstractUnitOfWork = Depends(dependencies.uow),
) -> dict[str, str]:
    try:
        reference = await services.allocate(order_id, sku, quantity, uow)
    except (OutOfStock, services.InvalidSku) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except services.DuplicateOrderLine as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"reference": reference}


@app.get("/batches/{reference}")
async def get_batch(reference: str, uow: AbstractUnitOfWork = Depends(dependencies.uow)) -> BatchOut:
    try:
        batch = await services.get_batch(reference, uow)
    except BatchNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return BatchOut.from_domain(batch)
