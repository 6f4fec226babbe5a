"""
Client session endpoints: sign in with a session token, sign out, inspect.
"""

from fastapi import APIRouter, Depends, Response, status

from realestate.config import Settings
from realestate.schemas.session import SessionCreate, SessionResponse
from realestate.services.auth import verify_session_token
from realestate.services.container import ServiceContainer
from realestate.utils.dependencies import get_container, get_settings_dependency
from realestate.schemas.error import get_auth_error_responses
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/session", tags=["Session"])


def _session_state(container: ServiceContainer) -> SessionResponse:
    user_id = container.auth.current_user_id()
    return SessionResponse(
        user_id=user_id,
        authenticated=bool(user_id),
        favorites_count=len(container.favorites.favorite_ids),
    )


@router.post(
    "",
    response_model=SessionResponse,
    summary="Sign in",
    description="Verify a session token, sign the user in and load their favorites",
    responses=get_auth_error_responses()
)
async def sign_in(
    payload: SessionCreate,
    container: ServiceContainer = Depends(get_container),
    settings: Settings = Depends(get_settings_dependency)
) -> SessionResponse:
    """
    Raises:
        InvalidTokenError: If the token cannot be verified
        FavoriteLoadError: If the favorites cannot be loaded
    """
    user_id = verify_session_token(payload.token, settings)
    if container.auth.current_user_id() not in (None, user_id):
        await container.sign_out()
    container.auth.sign_in(user_id)
    try:
        await container.favorites.load()
    except Exception:
        logger.warning(f"Signing out user {user_id}: favorites could not be loaded")
        await container.sign_out()
        raise
    return _session_state(container)


@router.get(
    "",
    response_model=SessionResponse,
    summary="Current session"
)
async def get_session(container: ServiceContainer = Depends(get_container)) -> SessionResponse:
    return _session_state(container)


@router.delete(
    "",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Sign out"
)
async def sign_out(container: ServiceContainer = Depends(get_container)) -> Response:
    await container.sign_out()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
