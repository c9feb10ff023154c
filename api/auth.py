import structlog
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from firebase_admin import auth
from pydantic import BaseModel

from libs.firebase.client import initialize_firebase_app

logger = structlog.get_logger(__name__)


class User(BaseModel):
    uid: str
    email: str | None = None


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token", auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(request: Request, token: str | None = Depends(oauth2_scheme)) -> User:
    """Resolve the bearer credential to a user. The user is also stored on ``request.state``."""
    if not token:
        raise _unauthorized("Authentication required")

    initialize_firebase_app()
    try:
        decoded_token = auth.verify_id_token(token)
    except (ValueError, auth.InvalidIdTokenError, auth.ExpiredIdTokenError, auth.RevokedIdTokenError) as e:
        logger.info("Rejected bearer credential", error_type=type(e).__name__)
        raise _unauthorized("Invalid authentication")
    except Exception as e:
        logger.error("Credential verification failed", error=str(e), error_type=type(e).__name__)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )

    user = User(uid=decoded_token["uid"], email=decoded_token.get("email"))
    request.state.user = user
    return user
