"""Shared API dependencies for authentication and database access."""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError
from sqlalchemy.orm import Session

from bhromonbondhu.core.security import decode_access_token
from bhromonbondhu.db.session import get_db
from bhromonbondhu.models import User
from bhromonbondhu.services.conversation_store import ConversationStore

logger = logging.getLogger(__name__)

# Missing credentials are reported by get_current_user as 401.
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _decode_user_id(subject: object) -> int:
    """Parse the numeric user id carried in the token subject.

    Raises:
        HTTPException: If the subject is not an integer
    """
    try:
        return int(str(subject))
    except (TypeError, ValueError) as err:
        raise _unauthorized("Could not validate credentials") from err


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the viewer from the bearer token.

    Args:
        credentials: HTTP Bearer token credentials, if any were sent
        db: Database session

    Returns:
        The active User the token was issued for

    Raises:
        HTTPException: 401 if the token is missing, invalid or expired, or the
            user is unknown or deactivated
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized("No authentication token provided")

    try:
        payload = decode_access_token(credentials.credentials)
    except ExpiredSignatureError as err:
        raise _unauthorized("Token expired") from err
    except JWTError as err:
        logger.warning("Rejected bearer token: %s", err)
        raise _unauthorized("Invalid token") from err

    subject = payload.get("sub")
    if subject is None:
        raise _unauthorized("Could not validate credentials")
    user_id = _decode_user_id(subject)

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise _unauthorized("User not found")
    if not user.is_active:
        raise _unauthorized("Account is deactivated")
    return user


def get_conversation_store(db: SessionDep) -> ConversationStore:
    """Bind a conversation store to the request's session."""
    return ConversationStore(db)


# Type aliases for current user and store dependencies
CurrentUserDep = Annotated[User, Depends(get_current_user)]
StoreDep = Annotated[ConversationStore, Depends(get_conversation_store)]
