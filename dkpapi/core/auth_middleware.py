from typing import Optional
from fastapi import HTTPException, Depends, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from dkpapi.core.exceptions import AuthenticationError
from dkpapi.core.security import decode_access_token
from dkpapi.schemas.auth import Actor

# JWT Bearer 토큰 스킴
security = HTTPBearer(auto_error=False)


def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Actor:
    """필수 인증 - 유효한 토큰의 sub 를 행위자 ID 로 사용"""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_access_token(credentials.credentials)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )

    subject = payload.get("sub")
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return Actor(id=str(subject), is_admin=bool(payload.get("is_admin", False)))


def require_admin(
    current_actor: Actor = Depends(get_current_actor),
) -> Actor:
    """DKP 지급/차감, 루트 분배 등 관리 작업용 의존성"""
    if not current_actor.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_actor
