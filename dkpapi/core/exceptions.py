from fastapi import HTTPException, status
from typing import Optional, Dict, Any

class BaseAPIException(HTTPException):
    """Base exception for API errors"""
    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}

        super().__init__(
            status_code=status_code,
            detail={
                "success": False,
                "error": {
                    "code": error_code,
                    "message": message,
                    "details": self.details
                }
            }
        )

    def __str__(self) -> str:  # Ensure str(e) returns the human message
        return self.message

class AuthenticationError(BaseAPIException):
    """Authentication related errors"""
    def __init__(self, message: str = "Authentication failed", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="AUTH_001",
            message=message,
            details=details
        )

class NotFoundError(BaseAPIException):
    """Resource not found errors"""
    def __init__(self, message: str = "Resource not found", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND_001",
            message=message,
            details=details
        )

class ConflictError(BaseAPIException):
    """Resource conflict errors"""
    def __init__(self, message: str = "Resource conflict", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code="CONFLICT_001",
            message=message,
            details=details
        )

class InternalServerError(BaseAPIException):
    """Internal server errors"""
    def __init__(self, message: str = "Internal server error", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="INTERNAL_001",
            message=message,
            details=details
        )

# ---------------------------------------------------------------------------
# Ledger / loot errors
# ---------------------------------------------------------------------------

class NoActiveSystemError(BaseAPIException):
    """The group (or the referenced system) has no active loot system"""
    def __init__(self, message: str = "No active loot system", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="LOOT_001",
            message=message,
            details=details
        )

class InvalidAmountError(BaseAPIException):
    """Award/deduct amount must be positive"""
    def __init__(self, message: str = "Amount must be positive", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="POINTS_001",
            message=message,
            details=details
        )

class AccountNotFoundError(BaseAPIException):
    """Character has no point account in the system"""
    def __init__(self, message: str = "Character has no DKP record", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="POINTS_002",
            message=message,
            details=details
        )

class LootNotFoundError(BaseAPIException):
    """Loot record does not exist"""
    def __init__(self, message: str = "Loot record not found", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="LOOT_002",
            message=message,
            details=details
        )

class LootAlreadyDistributedError(BaseAPIException):
    """Loot record was already awarded; undistribute it first"""
    def __init__(self, message: str = "Loot already distributed", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code="LOOT_003",
            message=message,
            details=details
        )

class LootNotDistributedError(BaseAPIException):
    """Loot record has no award to reverse"""
    def __init__(self, message: str = "Loot is not distributed", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code="LOOT_004",
            message=message,
            details=details
        )

class StoreUnavailableError(BaseAPIException):
    """Persistence failed or timed out (transient, caller may retry)"""
    def __init__(self, message: str = "Store unavailable", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code="STORE_001",
            message=message,
            details=details
        )
