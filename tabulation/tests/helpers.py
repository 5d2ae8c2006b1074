"""
Helpers shared by the test modules.
"""
from httpx import AsyncClient

PASSWORD = "secret-pass"


async def login(client: AsyncClient, role: str, username: str, password: str = PASSWORD) -> dict:
    """Sign in and return bearer headers."""
    response = await client.post(
        "/api/auth/login",
        json={"role": role, "username": username, "password": password}
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


async def score_cells(store, judge_id: int, values: dict) -> None:
    """Persist {(participant_id, criterion_id): value} for a judge, bypassing permissions."""
    for (participant_id, criterion_id), value in values.items():
        await store.upsert_row(
            "score",
            {"judge_id": judge_id, "participant_id": participant_id, "criteria_id": criterion_id},
            {"score": value},
        )
