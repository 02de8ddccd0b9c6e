"""API dependencies - authentication and authorization"""

from typing import Callable, Optional

from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session

from app.config import settings
from app.core.database import get_db
from app.core.exceptions import AuthorizationError
from app.models.user import User
from app.services.authenticator import Authenticator, get_authenticator


def access_token_from(header: Optional[str]) -> Optional[str]:
    """
    Extract the access token from an Authorization header value.

    A non-Bearer value is returned whole so it fails verification instead
    of reading as "no token" and letting the refresh cookie stand in.
    """
    if not header or not header.strip():
        return None
    value = header.strip()
    scheme, _, credentials = value.partition(" ")
    if scheme.lower() == "bearer":
        return credentials.strip() or None
    return value


def require_permissions(*permissions: str) -> Callable[..., User]:
    """
    Build a dependency that authenticates the caller and checks permissions

    Args:
        permissions: Permissions the caller's role must all hold; none means
            any authenticated user

    Returns:
        FastAPI dependency resolving to the current user
    """
    required = tuple(permissions)

    def dependency(
        request: Request,
        response: Response,
        db: Session = Depends(get_db),
        authenticator: Authenticator = Depends(get_authenticator),
    ) -> User:
        access_token = access_token_from(request.headers.get("Authorization"))
        refresh_token = request.cookies.get(settings.REFRESH_COOKIE_NAME)

        context = authenticator.authenticate(db, access_token, refresh_token)
        renewal = {}
        if context.renewed_access is not None:
            renewal = {"Authorization": f"Bearer {context.renewed_access.token}"}
            response.headers.update(renewal)

        try:
            authenticator.authorize(context.principal, required)
        except AuthorizationError as exc:
            # A 403 still hands back the renewed token
            exc.headers.update(renewal)
            raise
        return context.principal

    return dependency


get_current_user = require_permissions()
