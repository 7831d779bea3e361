from typing import Annotated

from fastapi import APIRouter, Depends

from authcore.domain.ports.unit_of_work import UnitOfWorkPort
from authcore.presentation.dependencies import get_uow

router = APIRouter(tags=["Health"])


@router.get("/healthz")
async def healthz() -> dict:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(uow: Annotated[UnitOfWorkPort, Depends(get_uow)]) -> dict:
    # borrowing a connection is enough; failures surface as 503
    async with uow:
        pass
    return {"status": "ready"}
