# supplychain/core/container.py

from dependency_injector import containers, providers

from supplychain.analytics.backoff import BackoffRetrier
from supplychain.analytics.cache import ResponseCache
from supplychain.analytics.orchestrator import AnalyticsOrchestrator
from supplychain.analytics.rate_limiter import RateLimiter
from supplychain.analytics.vision import ShelfImageAnalyzer
from supplychain.clients.gemini import GeminiClient
from supplychain.clients.vision import build_vision_client
from supplychain.core.settings import settings
from supplychain.db.session import build_engine, build_session_factory
from supplychain.repo.documents import DocumentStore

from supplychain.services.analytics import AnalyticsService
from supplychain.services.auth import AuthService
from supplychain.services.orders import OrderService
from supplychain.services.products import ProductService
from supplychain.services.simulation import SimulationService
from supplychain.services.tracking import TrackingService


class Container(containers.DeclarativeContainer):
    wiring_config = containers.WiringConfiguration(
        packages=["supplychain.api"]
    )

    engine = providers.Singleton(
        build_engine,
        settings.ASYNC_DATABASE_URL,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
    )

    session_factory = providers.Singleton(
        build_session_factory,
        engine=engine,
    )

    document_store = providers.Singleton(
        DocumentStore,
        session_factory=session_factory,
    )

    # AI: лимитер и кеш живут весь процесс, иначе счётчики и файл расходятся
    rate_limiter = providers.Singleton(
        RateLimiter,
        max_calls=settings.AI_RATE_LIMIT_MAX_CALLS,
        window_seconds=settings.AI_RATE_LIMIT_WINDOW_SECONDS,
    )

    response_cache = providers.Singleton(
        ResponseCache,
        path=settings.AI_CACHE_PATH,
    )

    retrier = providers.Singleton(
        BackoffRetrier,
        base_delay=settings.AI_RETRY_BASE_DELAY_SECONDS,
        max_delay=settings.AI_RETRY_MAX_DELAY_SECONDS,
    )

    llm_client = providers.Singleton(
        GeminiClient,
        api_key=settings.GEMINI_API_KEY,
        model=settings.GEMINI_MODEL,
        base_url=settings.GEMINI_BASE_URL,
        timeout=settings.AI_TIMEOUT_SECONDS,
    )

    vision_client = providers.Singleton(
        build_vision_client,
        api_key=settings.VISION_API_KEY,
        base_url=settings.VISION_BASE_URL,
    )

    image_analyzer = providers.Singleton(
        ShelfImageAnalyzer,
        vision=vision_client,
    )

    analytics_orchestrator = providers.Singleton(
        AnalyticsOrchestrator,
        llm=llm_client,
        cache=response_cache,
        limiter=rate_limiter,
        retrier=retrier,
        image_analyzer=image_analyzer,
        cache_fallback=settings.AI_CACHE_FALLBACK_RESULTS,
        max_retries=settings.AI_RETRY_MAX_RETRIES,
        prompt_record_limit=settings.AI_PROMPT_RECORD_LIMIT,
    )

    # services
    auth_service = providers.Factory(
        AuthService,
        store=document_store,
    )

    product_service = providers.Factory(
        ProductService,
        store=document_store,
    )

    order_service = providers.Factory(
        OrderService,
        store=document_store,
    )

    tracking_service = providers.Factory(
        TrackingService,
        store=document_store,
    )

    simulation_service = providers.Factory(
        SimulationService,
        store=document_store,
    )

    analytics_service = providers.Factory(
        AnalyticsService,
        store=document_store,
        orchestrator=analytics_orchestrator,
    )
