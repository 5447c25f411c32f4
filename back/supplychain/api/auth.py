from fastapi import APIRouter, Depends, status
from dependency_injector.wiring import inject, Provide

from supplychain.core.container import Container
from supplychain.schemas.request import ApiResponse, LoginRequest, LoginResponse, RegisterRequest
from supplychain.services.auth import AuthService

router = APIRouter(prefix="/api", tags=["auth"])


@router.post("/register", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
@inject
async def register(
    payload: RegisterRequest,
    auth_service: AuthService = Depends(Provide[Container.auth_service]),
):
    user = await auth_service.register_user(payload)
    return ApiResponse(message=f"{user.role} registered successfully", data=user)


@router.post("/login", response_model=LoginResponse, status_code=status.HTTP_200_OK)
@inject
async def login(
    payload: LoginRequest,
    auth_service: AuthService = Depends(Provide[Container.auth_service]),
):
    token = await auth_service.login_user(payload)
    return LoginResponse(token=token)
