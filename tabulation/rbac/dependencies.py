"""
tabulation/rbac/dependencies.py
FastAPI dependencies resolving the bearer token to a Principal.

ALL judge/tabulator/admin routes use these.
"""
import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from tabulation.database import get_store, store_context
from tabulation.orm.accounts import PrincipalRole
from tabulation.services.row_store import RowStore
from tabulation.services.session_service import Principal, resolve_token

logger = logging.getLogger(__name__)

# auto_error=False: a missing token is reported as NoSessionError, not a bare 401
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def require_roles(*roles: PrincipalRole):
    """
    Dependency factory: resolve the session to a principal with one of the roles.
    Usage: principal: Principal = Depends(require_roles(PrincipalRole.ADMIN))
    """
    async def dependency(
        token: Optional[str] = Depends(oauth2_scheme),
        store: RowStore = Depends(get_store),
    ) -> Principal:
        return await resolve_token(store, token, roles, store_context.settings)
    return dependency


get_judge = require_roles(PrincipalRole.JUDGE)
get_viewer = require_roles(PrincipalRole.JUDGE, PrincipalRole.TABULATOR, PrincipalRole.ADMIN)
get_staff = require_roles(PrincipalRole.TABULATOR, PrincipalRole.ADMIN)
get_admin = require_roles(PrincipalRole.ADMIN)
