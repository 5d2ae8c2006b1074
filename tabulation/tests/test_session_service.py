"""
Session Identity Tests

Coverage:
- Credential checks per role
- Token round trip and role binding
- Identity errors when records disappear
"""
import pytest

from tabulation.config.settings import Settings
from tabulation.exceptions import InvalidCredentialsError, NoSessionError, PrincipalNotFoundError
from tabulation.orm.accounts import PrincipalRole
from tabulation.services.session_service import (
    authenticate_role,
    create_session_token,
    decode_session_token,
    normalize_password,
    resolve_principal,
    resolve_token,
)
from tabulation.tests.helpers import PASSWORD

SETTINGS = Settings(database_url="sqlite+aiosqlite:///:memory:", jwt_secret_key="test-secret")


@pytest.mark.asyncio
async def test_judge_signs_in(store, seed):
    result = await authenticate_role(store, PrincipalRole.JUDGE, "chair", PASSWORD, SETTINGS)

    assert result.principal.id == seed.chairman_id
    assert result.principal.is_chairman is True
    assert result.principal.event.id == seed.event_id
    assert decode_session_token(result.access_token, SETTINGS)["role"] == "judge"


@pytest.mark.asyncio
async def test_admin_has_no_event(store, seed):
    result = await authenticate_role(store, PrincipalRole.ADMIN, "admin", PASSWORD, SETTINGS)

    assert result.principal.event is None
    assert result.principal.viewer is None


@pytest.mark.asyncio
@pytest.mark.parametrize("username,password", [("judge_a", "wrong"), ("ghost", PASSWORD)])
async def test_bad_credentials(store, seed, username, password):
    with pytest.raises(InvalidCredentialsError):
        await authenticate_role(store, PrincipalRole.JUDGE, username, password, SETTINGS)


@pytest.mark.asyncio
async def test_credentials_are_per_role(store, seed):
    with pytest.raises(InvalidCredentialsError):
        await authenticate_role(store, PrincipalRole.TABULATOR, "judge_a", PASSWORD, SETTINGS)


@pytest.mark.asyncio
async def test_missing_token_is_no_session(store, seed):
    with pytest.raises(NoSessionError) as exc_info:
        await resolve_token(store, None, [PrincipalRole.JUDGE], SETTINGS)

    assert exc_info.value.message == "No judge session found. Please sign in again."


@pytest.mark.asyncio
async def test_other_role_token_rejected(store, seed):
    token = create_session_token("tab", PrincipalRole.TABULATOR, SETTINGS)

    with pytest.raises(NoSessionError):
        await resolve_token(store, token, [PrincipalRole.JUDGE], SETTINGS)

    principal = await resolve_token(store, token, [PrincipalRole.TABULATOR, PrincipalRole.ADMIN], SETTINGS)
    assert principal.id == seed.tabulator_id


@pytest.mark.asyncio
async def test_token_signed_with_other_key_rejected(store, seed):
    token = create_session_token("judge_a", PrincipalRole.JUDGE, Settings(jwt_secret_key="other"))

    with pytest.raises(NoSessionError):
        await resolve_token(store, token, [PrincipalRole.JUDGE], SETTINGS)


@pytest.mark.asyncio
async def test_deleted_judge_is_not_found(store, seed):
    token = create_session_token("judge_b", PrincipalRole.JUDGE, SETTINGS)
    await store.delete_rows("judge_assignment", {"judge_id": seed.judge_b_id})
    await store.delete_rows("user_judge", {"id": seed.judge_b_id})

    with pytest.raises(PrincipalNotFoundError) as exc_info:
        await resolve_token(store, token, [PrincipalRole.JUDGE], SETTINGS)

    assert exc_info.value.message == "Judge account not found. Please contact the administrator."


@pytest.mark.asyncio
async def test_missing_event_is_not_found(store, seed, password_hash):
    await store.insert_rows("user_tabulator", [{
        "event_id": 9999, "full_name": "Orphan", "username": "orphan", "password_hash": password_hash,
    }])

    with pytest.raises(PrincipalNotFoundError) as exc_info:
        await resolve_principal(store, PrincipalRole.TABULATOR, "orphan")

    assert exc_info.value.message == "Assigned event not found. Please contact the administrator."


def test_long_passwords_truncated_to_72_bytes():
    assert len(normalize_password("é" * 50).encode("utf-8")) <= 72
    assert normalize_password("short") == "short"
