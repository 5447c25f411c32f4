from fastapi import APIRouter, Depends
from dependency_injector.wiring import inject, Provide

from supplychain.core.container import Container
from supplychain.schemas.request import ApiResponse
from supplychain.services.simulation import SimulationService
from supplychain.utils.deps import require_admin

router = APIRouter(
    prefix="/api/simulation",
    tags=["simulation"],
    dependencies=[Depends(require_admin)],
)


@router.post("/seed", response_model=ApiResponse)
@inject
async def seed(
    svc: SimulationService = Depends(Provide[Container.simulation_service]),
):
    counts = await svc.seed()
    return ApiResponse(message="Sample data generated", data=counts)
