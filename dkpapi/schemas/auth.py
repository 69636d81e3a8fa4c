from pydantic import BaseModel, Field


class Actor(BaseModel):
    """요청을 수행하는 주체 (외부 인증 공급자가 발급한 토큰에서 추출)"""

    id: str = Field(..., min_length=1, description="불투명 사용자 식별자 (JWT sub)")
    is_admin: bool = Field(False, description="DKP 관리 권한 여부")
