from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from telecare.core.errors import SessionNotFoundError
from telecare.services.session_registry import BookingSession, BookingSessionRegistry

security = HTTPBearer(auto_error=False)


def get_bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    """Identity token to forward to the appointment backend; verified there."""
    if not credentials or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


def get_registry(request: Request) -> BookingSessionRegistry:
    return request.app.state.registry


def get_booking_session(
    session_id: str,
    token: str = Depends(get_bearer_token),
    registry: BookingSessionRegistry = Depends(get_registry),
) -> BookingSession:
    session = registry.get(session_id)
    if not session.owned_by(token):
        raise SessionNotFoundError()
    # same user with a refreshed token: forward it to the backend from now on
    session.api.adopt_if_newer(token)
    return session
