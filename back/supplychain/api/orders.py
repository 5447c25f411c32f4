from fastapi import APIRouter, Depends, status
from dependency_injector.wiring import inject, Provide

from supplychain.core.container import Container
from supplychain.schemas.request import ApiResponse, CurrentUser, OrderCreate
from supplychain.services.orders import OrderService
from supplychain.utils.deps import get_current_user

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
@inject
async def create_order(
    payload: OrderCreate,
    user: CurrentUser = Depends(get_current_user),
    svc: OrderService = Depends(Provide[Container.order_service]),
):
    order = await svc.create_order(user, payload)
    return ApiResponse(message="Order created", data=order)


@router.get("", response_model=ApiResponse)
@inject
async def list_orders(
    user: CurrentUser = Depends(get_current_user),
    svc: OrderService = Depends(Provide[Container.order_service]),
):
    return ApiResponse(data=await svc.list_orders(user))


@router.get("/{order_id}", response_model=ApiResponse)
@inject
async def get_order(
    order_id: str,
    user: CurrentUser = Depends(get_current_user),
    svc: OrderService = Depends(Provide[Container.order_service]),
):
    return ApiResponse(data=await svc.get_order(user, order_id))
