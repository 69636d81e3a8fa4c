import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import DataError, DBAPIError, IntegrityError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from dkpapi.core.exceptions import InvalidAmountError, StoreUnavailableError
from dkpapi.database.connection import SessionLocal

logger = logging.getLogger(__name__)


def get_db():
    db = SessionLocal()
    try:
        yield db
    except Exception:
        if db.in_transaction():
            db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def store_operation(db: Session, action: str) -> Iterator[Session]:
    """저장소 작업 경계

    - 예외 발생 시 현재 트랜잭션 전체를 롤백 (부분 반영 방지)
    - 값 범위 초과(DataError, 예: 잔액이 INTEGER 범위를 넘는 경우)는 InvalidAmountError
    - 커넥션/타임아웃 계열 오류는 StoreUnavailableError 로 변환
    - 도메인 예외 및 무결성 오류는 그대로 전파

    커밋은 호출자가 결정한다.
    """
    try:
        yield db
    except IntegrityError:
        db.rollback()
        raise
    except DataError as e:
        db.rollback()
        logger.warning(f"Out of range value during '{action}': {str(e)}")
        raise InvalidAmountError(
            f"Value out of range while trying to {action}",
            details={"action": action},
        ) from e
    except (DBAPIError, PoolTimeoutError) as e:
        db.rollback()
        logger.error(f"Store failure during '{action}': {str(e)}")
        raise StoreUnavailableError(
            f"Persistence layer unavailable while trying to {action}",
            details={"action": action},
        ) from e
    except Exception:
        db.rollback()
        raise
