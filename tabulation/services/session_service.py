"""
tabulation/services/session_service.py
Role authentication and per-request principal resolution.

A session is a signed token carrying (username, role). Every request
re-resolves it to the full record:
- no token / bad token / other role's token -> NoSessionError
- username not found                         -> PrincipalNotFoundError
- judge/tabulator event missing              -> PrincipalNotFoundError
"""
import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from tabulation.config.settings import Settings, settings as default_settings
from tabulation.core.rows import Row
from tabulation.exceptions import (
    InvalidCredentialsError,
    NoSessionError,
    PrincipalNotFoundError,
    ScoringSuspendedError,
)
from tabulation.orm.accounts import JudgeRole, PrincipalRole

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

ROLE_TABLES = {
    PrincipalRole.JUDGE: "user_judge",
    PrincipalRole.TABULATOR: "user_tabulator",
    PrincipalRole.ADMIN: "user_admin",
}

ROLE_LABELS = {
    PrincipalRole.JUDGE: "Judge",
    PrincipalRole.TABULATOR: "Tabulator",
    PrincipalRole.ADMIN: "Administrator",
}

# bcrypt can block the event loop - verify in a thread pool
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=10,
)

_executor = None


def get_executor() -> ThreadPoolExecutor:
    global _executor
    if _executor is None:
        _executor = ThreadPoolExecutor(max_workers=4)
    return _executor


def normalize_password(password: str) -> str:
    """
    bcrypt only supports 72 bytes.
    Truncate AFTER UTF-8 encoding.
    """
    encoded = password.encode("utf-8")
    if len(encoded) > 72:
        encoded = encoded[:72]
    return encoded.decode("utf-8", errors="ignore")


def hash_password(password: str) -> str:
    return pwd_context.hash(normalize_password(password))


async def verify_password_async(plain: str, hashed: str) -> bool:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(get_executor(), pwd_context.verify, normalize_password(plain), hashed)


# ================= TOKENS =================

def create_session_token(username: str, role: PrincipalRole, settings: Optional[Settings] = None) -> str:
    settings = settings or default_settings
    expire = datetime.utcnow() + timedelta(minutes=settings.access_token_expire_minutes)
    payload = {
        "sub": username,
        "role": PrincipalRole(role).value,
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=ALGORITHM)


def decode_session_token(token: str, settings: Optional[Settings] = None) -> Optional[dict]:
    """Decode and validate a session token; None if invalid or expired."""
    settings = settings or default_settings
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != "access" or not payload.get("sub"):
        return None
    return payload


# ================= PRINCIPALS =================

@dataclass
class Principal:
    """A resolved session: role, account record and (judge/tabulator) event."""
    role: PrincipalRole
    record: Row
    event: Optional[Row] = None

    @property
    def id(self) -> int:
        return self.record.id

    @property
    def username(self) -> str:
        return self.record.username

    @property
    def is_judge(self) -> bool:
        return self.role == PrincipalRole.JUDGE

    @property
    def is_chairman(self) -> bool:
        return self.is_judge and self.record.role == JudgeRole.CHAIRMAN

    @property
    def viewer(self) -> Any:
        """Judge record for judge-scoped views; None for aggregate viewers."""
        return self.record if self.is_judge else None

    def ensure_event_active(self) -> None:
        """
        Raises:
            ScoringSuspendedError: If the principal's event is not active
        """
        if self.event is not None and not self.event.is_active:
            raise ScoringSuspendedError(self.event.id)


@dataclass
class AuthResult:
    access_token: str
    principal: Principal
    token_type: str = "bearer"


async def resolve_principal(store, role: PrincipalRole, username: Optional[str]) -> Principal:
    """
    Re-resolve a stored username to its principal.

    Raises:
        NoSessionError: No stored identity for the role
        PrincipalNotFoundError: Identity or its event no longer exists
    """
    role = PrincipalRole(role)
    if not username:
        raise NoSessionError(role.value)

    rows = await store.query_rows(ROLE_TABLES[role], {"username": username})
    if not rows:
        logger.warning(f"{role.value} session for unknown username '{username}'")
        raise PrincipalNotFoundError(
            f"{ROLE_LABELS[role]} account not found. Please contact the administrator."
        )
    record = rows[0]

    event = None
    if role != PrincipalRole.ADMIN:
        event = await store.get_row("event", record.event_id)
        if event is None:
            raise PrincipalNotFoundError("Assigned event not found. Please contact the administrator.")

    return Principal(role=role, record=record, event=event)


async def resolve_token(store, token: Optional[str], roles: Iterable[PrincipalRole],
                        settings: Optional[Settings] = None) -> Principal:
    """Resolve a bearer token to a principal holding one of the roles."""
    roles = [PrincipalRole(role) for role in roles]
    label = roles[0].value if len(roles) == 1 else "user"
    if not token:
        raise NoSessionError(label)

    payload = decode_session_token(token, settings)
    if payload is None:
        raise NoSessionError(label)

    try:
        role = PrincipalRole(payload.get("role"))
    except ValueError:
        raise NoSessionError(label)
    if role not in roles:
        raise NoSessionError(label)

    return await resolve_principal(store, role, payload["sub"])


async def authenticate_role(store, role: PrincipalRole, username: str, password: str,
                            settings: Optional[Settings] = None) -> AuthResult:
    """
    Verify credentials for a role and issue a session token.

    Raises:
        InvalidCredentialsError: Unknown username or wrong password
        PrincipalNotFoundError: The account's event is missing
    """
    role = PrincipalRole(role)
    rows = await store.query_rows(ROLE_TABLES[role], {"username": username})
    if not rows or not await verify_password_async(password, rows[0].password_hash):
        logger.warning(f"Failed {role.value} login for '{username}'")
        raise InvalidCredentialsError()

    principal = await resolve_principal(store, role, username)
    token = create_session_token(username, role, settings)
    logger.info(f"{role.value} '{username}' signed in")
    return AuthResult(access_token=token, principal=principal)
