from fastapi import APIRouter, Depends, File, UploadFile
from dependency_injector.wiring import inject, Provide

from supplychain.core.container import Container
from supplychain.core.exceptions import MissingFieldsException
from supplychain.schemas.analytics import (
    AccuracyInput,
    AccuracyResult,
    AnalyticsInput,
    ComprehensiveAnalytics,
    ComprehensiveAnalyticsInput,
    ImageAnalysisResult,
    SalesQuantityResult,
    StockLevelsResult,
    StockoutAndVolumeResult,
)
from supplychain.services.analytics import AnalyticsService
from supplychain.utils.deps import require_admin

router = APIRouter(
    prefix="/api/analytics",
    tags=["analytics"],
    dependencies=[Depends(require_admin)],
)


@router.post("/comprehensive", response_model=ComprehensiveAnalytics)
@inject
async def comprehensive(
    body: ComprehensiveAnalyticsInput,
    svc: AnalyticsService = Depends(Provide[Container.analytics_service]),
):
    """
    Все виды анализа разом. Если AI недоступен или упёрся в лимит,
    ответ той же формы собирается статистикой.
    """
    return await svc.comprehensive(body)


@router.post("/sales-quantity", response_model=SalesQuantityResult)
@inject
async def sales_quantity(
    body: AnalyticsInput,
    svc: AnalyticsService = Depends(Provide[Container.analytics_service]),
):
    return await svc.sales_quantity(body)


@router.post("/stock-levels", response_model=StockLevelsResult)
@inject
async def stock_levels(
    body: AnalyticsInput,
    svc: AnalyticsService = Depends(Provide[Container.analytics_service]),
):
    return await svc.stock_levels(body)


@router.post("/stockout", response_model=StockoutAndVolumeResult)
@inject
async def stockout(
    body: AnalyticsInput,
    svc: AnalyticsService = Depends(Provide[Container.analytics_service]),
):
    return await svc.stockout_and_volume(body)


@router.post("/accuracy", response_model=AccuracyResult)
@inject
async def accuracy(
    body: AccuracyInput,
    svc: AnalyticsService = Depends(Provide[Container.analytics_service]),
):
    return svc.accuracy(body)


@router.post("/shelf-image", response_model=ImageAnalysisResult)
@inject
async def shelf_image(
    image: UploadFile = File(...),
    svc: AnalyticsService = Depends(Provide[Container.analytics_service]),
):
    """
    Фото полки -> товары, заполненность, признаки пустых мест.
    Без VISION_API_KEY отвечает 503.
    """
    content = await image.read()
    if not content:
        raise MissingFieldsException("Image file required")
    return await svc.shelf_image(content)
