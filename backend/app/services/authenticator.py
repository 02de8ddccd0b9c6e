"""Request authentication: access token first, refresh cookie as fallback."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, NoReturn, Optional

from prometheus_client import Counter
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import (
    AuthErrorKind,
    AuthFailure,
    AuthorizationError,
    InvalidTokenError,
    ServiceUnavailableError,
)
from app.core.tokens import IssuedToken
from app.models.user import User
from app.services.role_service import RoleService, role_service
from app.services.token_service import TokenService, token_service
from app.services.user_service import user_service

logger = logging.getLogger(__name__)

AUTH_DECISIONS = Counter(
    "residence_auth_decisions_total",
    "Authentication and authorization decisions",
    ["outcome"],
)

PrincipalResolver = Callable[[Session, int], Optional[User]]


class CredentialSource(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class AuthContext:
    """Authenticated caller; ``renewed_access`` is set after a refresh fallback."""
    principal: User
    source: CredentialSource
    renewed_access: Optional[IssuedToken] = None


class Authenticator:
    """
    Resolve the caller of a request and enforce required permissions.

    1. A valid access token authenticates directly.
    2. An access token that failed only because it expired falls back to the
       refresh cookie; any other access-token failure rejects outright.
    3. A live refresh token yields a fresh access token. The refresh token
       itself is not rotated here.
    """

    def __init__(
        self,
        tokens: TokenService,
        resolve_principal: PrincipalResolver = user_service.resolve_principal,
        roles: RoleService = role_service,
    ) -> None:
        self.tokens = tokens
        self._resolve_principal = resolve_principal
        self.roles = roles

    def authenticate(
        self,
        db: Session,
        access_token: Optional[str],
        refresh_token: Optional[str],
    ) -> AuthContext:
        """
        Raises:
            InvalidTokenError: No usable credential
            ServiceUnavailableError: The ledger or user directory failed
        """
        expired: Optional[AuthFailure] = None
        if access_token:
            result = self.tokens.verify_access(access_token)
            if result.ok:
                principal = self._resolve(db, result.claims.subject)
                AUTH_DECISIONS.labels("access").inc()
                return AuthContext(principal=principal, source=CredentialSource.ACCESS)
            if result.error.kind is not AuthErrorKind.EXPIRED:
                self._reject(result.error)
            expired = result.error
            logger.debug("Access token expired, trying refresh token")

        if refresh_token:
            result = self._verify_refresh(db, refresh_token)
            if not result.ok:
                self._reject(result.error)
            principal = self._resolve(db, result.claims.subject)
            renewed = self.tokens.issue_access_only(principal.id)
            AUTH_DECISIONS.labels("renewed").inc()
            logger.info("Renewed access token for user %s from refresh token", principal.id)
            return AuthContext(
                principal=principal,
                source=CredentialSource.REFRESH,
                renewed_access=renewed,
            )

        self._reject(expired or AuthFailure(AuthErrorKind.UNAUTHENTICATED, "no usable credentials"))

    def authorize(self, principal: User, required: Iterable[str]) -> None:
        """
        Raises:
            AuthorizationError: If the principal's role lacks any required permission
        """
        missing = self.roles.missing_permissions(principal.role, required)
        if missing:
            AUTH_DECISIONS.labels("forbidden").inc()
            logger.warning(
                "User %s (role %s) denied, missing %s",
                principal.id,
                principal.role,
                ", ".join(missing),
            )
            raise AuthorizationError()

    def _verify_refresh(self, db: Session, refresh_token: str):
        try:
            return self.tokens.verify_refresh(db, refresh_token)
        except ServiceUnavailableError:
            AUTH_DECISIONS.labels("unavailable").inc()
            raise

    def _resolve(self, db: Session, subject_id: int) -> User:
        try:
            principal = self._resolve_principal(db, subject_id)
        except SQLAlchemyError as exc:
            AUTH_DECISIONS.labels("unavailable").inc()
            logger.error("Principal lookup for user %s failed: %s", subject_id, exc)
            raise ServiceUnavailableError() from exc
        if principal is None:
            self._reject(AuthFailure(AuthErrorKind.PRINCIPAL_NOT_FOUND, f"user {subject_id}"))
        return principal

    def _reject(self, failure: AuthFailure) -> NoReturn:
        AUTH_DECISIONS.labels("rejected").inc()
        logger.info("Authentication rejected: %s", failure)
        raise InvalidTokenError(failure)


authenticator = Authenticator(token_service)


def get_authenticator() -> Authenticator:
    """Dependency returning the process-wide authenticator"""
    return authenticator
