from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from urllib.parse import quote_plus


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file="dkpapi/.env",
        env_file_encoding="utf-8",
        extra="allow",
    )
    # Application
    APP_NAME: str = "Guild DKP Ledger API"
    PROJECT_NAME: str = "Guild DKP Ledger"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    POSTGRES_HOST: str = ""
    POSTGRES_PORT: int = 5432
    POSTGRES_USERNAME: str = ""
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DATABASE: str = ""
    POSTGRES_SCHEMA: str = "public"

    # 지정되면 POSTGRES_* 조합보다 우선 (로컬/테스트용 sqlite 등)
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 10  # 커넥션 풀 대기 시간 (초)
    DB_STATEMENT_TIMEOUT_MS: int = 5000  # PostgreSQL statement_timeout

    @property
    def database_url(self) -> str:
        """Construct database URL from individual components"""
        if self.DATABASE_URL:
            return self.DATABASE_URL

        # URL encode the password to handle special characters
        encoded_password = quote_plus(self.POSTGRES_PASSWORD)
        return f"postgresql+psycopg2://{self.POSTGRES_USERNAME}:{encoded_password}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DATABASE}"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    # Security
    SECRET_KEY: str = ""
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Ledger / Loot
    LEDGER_DEFAULT_PAGE_SIZE: int = 50
    LEDGER_MAX_PAGE_SIZE: int = 100
    LOOT_HISTORY_DEFAULT_LIMIT: int = 50  # 루트 히스토리 기본 조회 개수
    LOOT_HISTORY_MAX_LIMIT: int = 200
    LOOT_REASON_PREFIX: str = "Loot"  # "Loot: <아이템명>"
    REFUND_REASON_PREFIX: str = "Refund"
    DECAY_REASON: str = "decay"


settings = Settings()
