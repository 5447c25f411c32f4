from fastapi import Depends, Header, HTTPException, status

from supplychain.core.security import SecurityManager
from supplychain.schemas.request import CurrentUser


def get_bearer(authorization: str = Header("")) -> str:
    """Достаёт токен из Authorization: Bearer <token>"""
    # допускаем разный регистр "Bearer"
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token.strip()


async def get_current_user(token: str = Depends(get_bearer)) -> CurrentUser:
    # id, email и роль лежат в самом токене, в базу не ходим
    payload = SecurityManager.verify_token(token)
    if not payload or not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or expired token",
        )
    return CurrentUser.from_claims(payload)


# гард по ролям
def require_role(*allowed: str):
    detail = f"{' or '.join(allowed).capitalize()} access only"

    async def dep(current: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
        return current
    return dep


require_admin = require_role("admin")
