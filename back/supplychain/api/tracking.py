from fastapi import APIRouter, Depends, Query
from dependency_injector.wiring import inject, Provide

from supplychain.core.container import Container
from supplychain.schemas.request import ApiResponse
from supplychain.services.tracking import TrackingService
from supplychain.utils.deps import require_admin

router = APIRouter(
    prefix="/api",
    tags=["tracking"],
    dependencies=[Depends(require_admin)],
)


@router.get("/inventory", response_model=ApiResponse)
@inject
async def inventory_log(
    svc: TrackingService = Depends(Provide[Container.tracking_service]),
):
    """Последние 100 сканов остатков, от новых к старым."""
    return ApiResponse(data=await svc.inventory_log())


@router.get("/delivery", response_model=ApiResponse)
@inject
async def deliveries(
    svc: TrackingService = Depends(Provide[Container.tracking_service]),
):
    return ApiResponse(data=await svc.deliveries())


@router.get("/delivery/{order_id}", response_model=ApiResponse)
@inject
async def delivery(
    order_id: str,
    svc: TrackingService = Depends(Provide[Container.tracking_service]),
):
    return ApiResponse(data=await svc.delivery(order_id))


@router.get("/analytics/sales", response_model=ApiResponse)
@inject
async def sales(
    days: int = Query(7, ge=1, le=365),
    svc: TrackingService = Depends(Provide[Container.tracking_service]),
):
    """
    Сырые продажи за последние `days` дней
    GET /api/analytics/sales?days=7
    """
    return ApiResponse(data=await svc.sales_since(days))
