"""
tabulation/routes/auth.py
Role sign-in with rate limiting
"""
import logging

from fastapi import APIRouter, Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from tabulation.config.settings import settings
from tabulation.database import get_store, store_context
from tabulation.schemas.auth import LoginRequest, TokenResponse
from tabulation.services.row_store import RowStore
from tabulation.services.session_service import authenticate_role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])
limiter = Limiter(key_func=get_remote_address)


@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.login_rate_limit)
async def login(
    request: Request,  # Required by slowapi
    credentials: LoginRequest,
    store: RowStore = Depends(get_store),
):
    """Sign in as a judge, tabulator or administrator and return a session token."""
    result = await authenticate_role(
        store, credentials.role, credentials.username, credentials.password, store_context.settings
    )
    principal = result.principal
    return TokenResponse(
        access_token=result.access_token,
        role=principal.role,
        principal_id=principal.id,
        full_name=principal.record.full_name,
        event_id=principal.event.id if principal.event is not None else None,
        is_chairman=principal.is_chairman,
    )
