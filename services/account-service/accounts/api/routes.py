"""HTTP route definitions for the account service."""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt
from pydantic import BaseModel

from ..config import get_settings
from ..domain.account import Account
from ..domain.errors import (
    AccountError,
    EmailInUseError,
    InvalidCredentialsError,
    StoreError,
    ValidationError,
)
from ..domain.service import AccountService
from ..security.redis_throttle import RedisLoginThrottle
from ..security.throttle import LoginThrottle
from ..security.tokens import decode_access_token, issue_access_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/users")

bearer_scheme = HTTPBearer(auto_error=False)


class AccountResponse(BaseModel):
    """Serialised representation of an `Account` without its password hash."""

    account_id: str
    name: str
    email: str
    phone_number: str
    gender: str
    date_of_birth: date
    membership_status: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, account: Account) -> "AccountResponse":
        """Build a response model from the domain aggregate."""
        return cls(
            account_id=account.account_id,
            name=account.name,
            email=account.email,
            phone_number=account.phone_number,
            gender=account.gender,
            date_of_birth=account.date_of_birth,
            membership_status=account.membership_status,
            created_at=account.created_at,
            updated_at=account.updated_at,
        )


class SignupRequest(BaseModel):
    """Payload accepted when registering an account.

    Every field is optional here so that missing values reach the service's
    presence check and produce its error message instead of a 422.
    """

    name: str | None = None
    email: str | None = None
    password: str | None = None
    phone_number: str | None = None
    gender: str | None = None
    date_of_birth: str | None = None
    membership_status: str | None = None


class LoginRequest(BaseModel):
    """JSON body used to sign in with email and password."""

    email: str | None = None
    password: str | None = None


class AuthResponse(BaseModel):
    """Account plus the bearer token minted for it."""

    account: AccountResponse
    access_token: str
    token_type: str = "bearer"
    expires_in: int


settings = get_settings()


def _build_login_throttle() -> LoginThrottle | RedisLoginThrottle:
    """Instantiate the configured throttle backend, preferring Redis when available."""
    if settings.throttle_backend == "redis" and settings.redis_url:
        try:
            import redis

            client = redis.from_url(settings.redis_url)
            # ensure connectivity early to fail fast and fall back
            client.ping()
            logger.info("login throttle configured for redis backend at %s", settings.redis_url)
            return RedisLoginThrottle(
                client,
                max_failures=settings.login_max_failures,
                window_seconds=settings.login_failure_window_seconds,
            )
        except Exception as exc:  # pragma: no cover - depends on a live redis
            logger.warning("redis login throttle unavailable, falling back to in-memory: %s", exc)

    logger.info("login throttle using in-memory backend")
    return LoginThrottle(
        max_failures=settings.login_max_failures,
        window_seconds=settings.login_failure_window_seconds,
    )


login_throttle = _build_login_throttle()


def get_service(request: Request) -> AccountService:
    """Resolve the `AccountService` stored on the FastAPI application state."""
    service: AccountService = request.app.state.account_service
    return service


async def require_account(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    service: AccountService = Depends(get_service),
) -> Account:
    """Resolve the account named by a bearer token, for protected routes."""
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="authorization token required",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise unauthorized
    try:
        claims = decode_access_token(credentials.credentials)
    except jwt.PyJWTError as exc:
        logger.info("bearer token rejected: %s", exc)
        raise unauthorized from exc

    try:
        account_id = str(uuid.UUID(claims["sub"]))
    except ValueError as exc:
        logger.info("bearer token rejected: subject is not an account id")
        raise unauthorized from exc

    try:
        account = await service.get_account(account_id)
    except StoreError as exc:
        raise _http_error_from_account_error(exc) from exc
    if account is None:
        raise unauthorized
    return account


def _throttle_key(request: Request, email: str | None) -> str:
    email_key = (email or "").strip().lower()
    if not email_key:
        return ""
    client_host = request.client.host if request.client else "unknown"
    return f"{client_host}:{email_key}"


def _auth_response(account: Account) -> AuthResponse:
    token, expires_in = issue_access_token(subject=account.account_id, email=account.email)
    return AuthResponse(
        account=AccountResponse.from_domain(account),
        access_token=token,
        expires_in=expires_in,
    )


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    payload: SignupRequest,
    service: AccountService = Depends(get_service),
) -> AuthResponse:
    """Register an account and return it with a fresh access token."""
    try:
        account = await service.signup(
            payload.name,
            payload.email,
            payload.password,
            payload.phone_number,
            payload.gender,
            payload.date_of_birth,
            payload.membership_status,
        )
    except AccountError as exc:
        raise _http_error_from_account_error(exc) from exc
    return _auth_response(account)


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: LoginRequest,
    request: Request,
    service: AccountService = Depends(get_service),
) -> AuthResponse:
    """Verify credentials and return the account with a fresh access token.

    Failures are counted per client address and email, so failed attempts
    from one client never lock the owner out from another.
    """
    throttle_key = _throttle_key(request, payload.email)
    if throttle_key and login_throttle.is_blocked(throttle_key):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="too many failed login attempts",
        )
    try:
        account = await service.login(payload.email, payload.password)
    except InvalidCredentialsError as exc:
        if throttle_key:
            login_throttle.record_failure(throttle_key)
        raise _http_error_from_account_error(exc) from exc
    except AccountError as exc:
        raise _http_error_from_account_error(exc) from exc

    login_throttle.reset(throttle_key)
    return _auth_response(account)


@router.get("/me", response_model=AccountResponse)
async def me(account: Account = Depends(require_account)) -> AccountResponse:
    """Return the account that owns the bearer token."""
    return AccountResponse.from_domain(account)


def _http_error_from_account_error(exc: AccountError) -> HTTPException:
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    if isinstance(exc, EmailInUseError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.message)
    if isinstance(exc, InvalidCredentialsError):
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.message,
            headers={"WWW-Authenticate": "Bearer"},
        )
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="service unavailable")
