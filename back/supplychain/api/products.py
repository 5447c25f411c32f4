from fastapi import APIRouter, Depends, status
from dependency_injector.wiring import inject, Provide

from supplychain.core.container import Container
from supplychain.schemas.request import ApiResponse, CurrentUser, ProductCreate
from supplychain.services.products import ProductService
from supplychain.utils.deps import get_current_user

router = APIRouter(prefix="/api/product", tags=["products"])


@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
@inject
async def create_product(
    payload: ProductCreate,
    _: CurrentUser = Depends(get_current_user),
    svc: ProductService = Depends(Provide[Container.product_service]),
):
    product = await svc.create_product(payload)
    return ApiResponse(message="Product created", data=product)


@router.get("", response_model=ApiResponse)
@inject
async def list_products(
    svc: ProductService = Depends(Provide[Container.product_service]),
):
    return ApiResponse(data=await svc.list_products())


@router.get("/{product_id}", response_model=ApiResponse)
@inject
async def get_product(
    product_id: str,
    svc: ProductService = Depends(Provide[Container.product_service]),
):
    return ApiResponse(data=await svc.get_product(product_id))
