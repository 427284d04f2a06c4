"""
Authentication and authorization dependencies
"""

from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ..applications import LoanApplicationService
from ..config import LoanSimulatorConfig, get_config
from ..errors import (
    AuthenticationError, ConflictError, LoanSimulatorError, NotFoundError, ValidationError
)
from ..loans import LoanStore
from ..logging_config import get_logger
from ..storage import create_storage
from ..users import AuthService, User, UserStore


logger = get_logger("loan_simulator.api")

# JWT Security
security = HTTPBearer(auto_error=False)


class LoanSimulatorSystem:
    """Loan simulator with all components initialized"""

    def __init__(self, config: Optional[LoanSimulatorConfig] = None):
        self.config = config or get_config()

        self.storage = create_storage(self.config.storage_backend, self.config.database_path)
        self.user_store = UserStore(self.storage)
        self.loan_store = LoanStore(self.storage)

        self.auth_service = AuthService(
            self.user_store,
            jwt_secret=self.config.jwt_secret,
            jwt_issuer=self.config.jwt_issuer,
            jwt_expiry_days=self.config.jwt_expiry_days,
            jwt_algorithm=self.config.jwt_algorithm,
            password_min_length=self.config.password_min_length
        )
        self.loan_service = LoanApplicationService(
            self.user_store, self.loan_store, limits=self.config.loan_limits()
        )

        if self.config.seed_demo_users:
            self._seed_demo_users()

    def _seed_demo_users(self) -> None:
        self.auth_service.ensure_user(
            "System Administrator", self.config.admin_email, self.config.admin_password, is_admin=True
        )
        self.auth_service.ensure_user(
            "Demo User", self.config.demo_user_email, self.config.demo_user_password
        )

    def close(self) -> None:
        self.storage.close()


_system: Optional[LoanSimulatorSystem] = None


# Dependency to get the loan simulator system
def get_system() -> LoanSimulatorSystem:
    global _system
    if _system is None:
        _system = LoanSimulatorSystem()
    return _system


ERROR_STATUS_CODES = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
}


def http_error(error: LoanSimulatorError) -> HTTPException:
    """Map a domain error to the HTTPException the API raises for it"""
    for error_type, status_code in ERROR_STATUS_CODES.items():
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=error.message)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error.message)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    system: LoanSimulatorSystem = Depends(get_system)
) -> User:
    """Dependency that validates the bearer JWT and returns the user"""
    if not credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        user_id = system.auth_service.decode_token(credentials.credentials)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=e.message)

    user = system.user_store.get_by_id(user_id)
    if not user:
        raise HTTPException(status_code=401, detail="invalid token")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Administrator role required")
    return user
