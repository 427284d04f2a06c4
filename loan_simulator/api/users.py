"""
Registration, login and current-user endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, status

from .auth import LoanSimulatorSystem, get_current_user, get_system, http_error, logger
from .schemas import LoginRequest, RegisterRequest
from ..errors import AuthenticationError, LoanSimulatorError
from ..logging_config import log_action
from ..users import User


router = APIRouter()


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    system: LoanSimulatorSystem = Depends(get_system)
):
    """Register a new user and return a token"""
    try:
        result = system.auth_service.register(request.full_name, request.email, request.password)
    except LoanSimulatorError as e:
        log_action(logger, "warning", f"Registration failed: {e.message}",
                   action="register_failed", resource="auth")
        raise http_error(e)

    log_action(logger, "info", "User registered",
               user_id=result.user_id, action="register", resource="auth")
    return result.to_dict()


@router.post("/login")
async def login(
    request: LoginRequest,
    system: LoanSimulatorSystem = Depends(get_system)
):
    """Authenticate user and return JWT token"""
    try:
        result = system.auth_service.login(request.email, request.password)
    except AuthenticationError as e:
        log_action(logger, "warning", f"Authentication failed: {e.message}",
                   action="login_failed", resource="auth")
        raise HTTPException(status_code=401, detail=e.message)

    log_action(logger, "info", "User authenticated successfully",
               user_id=result.user_id, action="login", resource="auth")
    return {**result.to_dict(), "token_type": "bearer"}


@router.get("/me")
async def get_me(
    user: User = Depends(get_current_user),
    system: LoanSimulatorSystem = Depends(get_system)
):
    """Current user with loan counts"""
    summary = system.loan_service.summarize_user(user.id)
    return {**summary.to_dict(), "role": user.role}
