import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import text
from dkpapi.database.connection import engine
from dkpapi.config import settings
from dkpapi.models import Base


def init_db():
    """데이터베이스 초기화 (스키마 + 루트 시스템/포인트/원장/루트 기록 테이블)"""
    try:
        if not settings.is_sqlite:
            with engine.connect() as conn:
                conn.execute(
                    text(f"CREATE SCHEMA IF NOT EXISTS {settings.POSTGRES_SCHEMA}")
                )
                conn.commit()

        Base.metadata.create_all(bind=engine)
        print(f"Database initialized successfully: {sorted(Base.metadata.tables)}")

    except Exception as e:
        print(f"Database initialization failed: {str(e)}")
        raise


if __name__ == "__main__":
    init_db()
