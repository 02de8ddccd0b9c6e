"""Authentication routes"""

import logging

from fastapi import APIRouter, Depends, status, Request, Response
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.config import settings
from app.core.exceptions import (
    AuthErrorKind,
    AuthFailure,
    InvalidTokenError,
    ResourceNotFoundError,
)
from app.core.tokens import IssuedToken
from app.schemas.user import (
    UserLogin,
    TokenResponse,
    UserResponse,
    ForgotPasswordRequest,
    ResetPasswordRequest,
)
from app.schemas.response import APIResponse
from app.services.user_service import user_service
from app.services.token_service import TokenService, get_token_service
from app.services.rate_limiter import rate_limiter
from app.api.deps import get_current_user
from app.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter()


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _set_refresh_cookie(response: Response, refresh: IssuedToken) -> None:
    response.set_cookie(
        settings.REFRESH_COOKIE_NAME,
        refresh.token,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        expires=refresh.expires_at,
        path="/",
    )


def _clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(
        settings.REFRESH_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )


def deliver_reset_token(user: User, reset: IssuedToken) -> None:
    """Hand a reset token to the mail collaborator (not wired here)."""
    logger.info("Password reset token issued for user %s, expires %s", user.id, reset.expires_at)


@router.post("/login", response_model=TokenResponse, status_code=status.HTTP_200_OK)
def login(
    credentials: UserLogin,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    """
    Login endpoint - authenticate user, return an access token and set the
    refresh token cookie
    """
    rate_limiter.enforce(
        "login",
        f"{_client_ip(request)}:{credentials.email}",
        [
            (settings.LOGIN_RATE_LIMIT_PER_MINUTE, 60),
            (settings.LOGIN_RATE_LIMIT_PER_HOUR, 3600),
        ],
    )

    user = user_service.authenticate_user(db, credentials.email, credentials.password)
    pair = tokens.issue_auth_pair(db, user.id)
    _set_refresh_cookie(response, pair.refresh)

    return TokenResponse(
        access_token=pair.access.token,
        expires_at=pair.access.expires_at,
        user=UserResponse.model_validate(user),
    )


@router.post("/refresh", response_model=TokenResponse)
def refresh_tokens(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    """
    Rotate the refresh token cookie and return a new access token
    """
    refresh_token = request.cookies.get(settings.REFRESH_COOKIE_NAME)
    if not refresh_token:
        raise InvalidTokenError(AuthFailure(AuthErrorKind.UNAUTHENTICATED, "missing refresh cookie"))

    # The owner must still be active before anything is rotated
    result = tokens.verify_refresh(db, refresh_token)
    if not result.ok:
        raise InvalidTokenError(result.error)
    user = user_service.resolve_principal(db, result.claims.subject)
    if not user:
        raise InvalidTokenError(
            AuthFailure(AuthErrorKind.PRINCIPAL_NOT_FOUND, f"user {result.claims.subject}")
        )

    pair = tokens.refresh(db, refresh_token)

    _set_refresh_cookie(response, pair.refresh)
    return TokenResponse(
        access_token=pair.access.token,
        expires_at=pair.access.expires_at,
        user=UserResponse.model_validate(user),
    )


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    """
    Logout endpoint - revoke the refresh token cookie and clear it
    """
    rate_limiter.enforce(
        "logout",
        _client_ip(request),
        [(settings.LOGOUT_RATE_LIMIT_PER_MINUTE, 60)],
    )

    _clear_refresh_cookie(response)

    refresh_token = request.cookies.get(settings.REFRESH_COOKIE_NAME)
    if not refresh_token:
        return None

    try:
        tokens.revoke_session(db, refresh_token)
    except InvalidTokenError as exc:
        logger.info("Logout with unusable refresh token: %s", exc.failure)
    except ResourceNotFoundError:
        logger.info("Logout with refresh token that is already revoked")
    return None


@router.post("/logout-all", response_model=APIResponse)
def logout_everywhere(
    response: Response,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    """
    Revoke every refresh token of the current user
    """
    revoked = tokens.revoke_all_sessions(db, current_user.id)
    _clear_refresh_cookie(response)
    return APIResponse(message="All sessions revoked", data={"revoked": revoked})


@router.post("/forgot-password", status_code=status.HTTP_204_NO_CONTENT)
def forgot_password(
    body: ForgotPasswordRequest,
    request: Request,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    """
    Issue a password reset token. Responds 204 whether or not the email exists.
    """
    rate_limiter.enforce(
        "forgot-password",
        f"{_client_ip(request)}:{body.email}",
        [(settings.FORGOT_PASSWORD_RATE_LIMIT_PER_HOUR, 3600)],
    )

    user = user_service.get_user_by_email(db, body.email)
    if user and user.is_active:
        deliver_reset_token(user, tokens.issue_reset_token(user.id))
    return None


@router.post("/reset-password/{reset_token}", status_code=status.HTTP_204_NO_CONTENT)
def reset_password(
    reset_token: str,
    body: ResetPasswordRequest,
    request: Request,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    """
    Set a new password from a reset token and end every existing session
    """
    rate_limiter.enforce(
        "reset-password",
        _client_ip(request),
        [(settings.RESET_PASSWORD_RATE_LIMIT_PER_HOUR, 3600)],
    )

    result = tokens.verify_reset_token(reset_token)
    if not result.ok:
        raise InvalidTokenError(result.error)

    user = user_service.resolve_principal(db, result.claims.subject)
    if not user:
        raise InvalidTokenError(
            AuthFailure(AuthErrorKind.PRINCIPAL_NOT_FOUND, f"user {result.claims.subject}")
        )

    user_service.set_password(db, user.id, body.password)
    tokens.revoke_all_sessions(db, user.id)
    return None
