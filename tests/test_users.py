import uuid

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio

ME = "/v1/users/me"


async def test_update_profile(client: AsyncClient, author, author_headers):
    body = {"displayName": "  Echo Labs ", "bio": "We build voice tools.", "websiteUrl": "https://echo.example"}
    resp = await client.patch(ME, json=body, headers=author_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["displayName"] == "Echo Labs"
    assert data["bio"] == "We build voice tools."
    assert data["websiteUrl"] == "https://echo.example"

    me = (await client.get("/v1/auth/me", headers=author_headers)).json()
    assert me["displayName"] == "Echo Labs"
    assert me["githubUsername"] == "u1"


async def test_profile_fields_left_out_are_unchanged(client: AsyncClient, author_headers):
    await client.patch(ME, json={"bio": "first"}, headers=author_headers)
    data = (await client.patch(ME, json={"websiteUrl": "http://x.example"}, headers=author_headers)).json()
    assert data["bio"] == "first"
    assert data["displayName"] == "U1"


async def test_blank_bio_clears_it(client: AsyncClient, author_headers):
    await client.patch(ME, json={"bio": "first", "websiteUrl": "https://x.example"}, headers=author_headers)
    data = (await client.patch(ME, json={"bio": "  ", "websiteUrl": ""}, headers=author_headers)).json()
    assert data["bio"] is None
    assert data["websiteUrl"] is None


@pytest.mark.parametrize(
    "body",
    [
        {"displayName": "   "},
        {"websiteUrl": "ftp://x.example"},
        {"bio": "b" * 501},
    ],
)
async def test_invalid_profile_updates(client: AsyncClient, author_headers, body):
    resp = await client.patch(ME, json=body, headers=author_headers)
    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION"


async def test_profile_update_requires_auth(client: AsyncClient):
    assert (await client.patch(ME, json={"bio": "x"})).status_code == 401


async def test_public_profile_hides_private_fields(client: AsyncClient, author, author_headers):
    await client.patch(ME, json={"bio": "hello"}, headers=author_headers)

    resp = await client.get(f"/v1/users/{author.id}")
    assert resp.status_code == 200
    data = resp.json()
    assert data["githubUsername"] == "u1"
    assert data["bio"] == "hello"
    for private in ("email", "tier", "role", "totalEarningsUsd", "lastLoginAt"):
        assert private not in data


async def test_unknown_public_profile(client: AsyncClient):
    resp = await client.get(f"/v1/users/{uuid.uuid4()}")
    assert resp.status_code == 404
    assert resp.json()["code"] == "NOT_FOUND"
