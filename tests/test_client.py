import json
import uuid
from decimal import Decimal

import httpx
import pytest

from yigyaps.client import RegistryApiError, RegistryClient
from yigyaps.schemas import PublishPackageRequest

PACKAGE_PK = str(uuid.uuid4())
AUTHOR_PK = str(uuid.uuid4())


def package_json(**overrides) -> dict:
    body = {
        "id": PACKAGE_PK,
        "packageId": "echo",
        "version": "0.1.0",
        "displayName": "Echo",
        "description": "d",
        "readme": None,
        "authorId": AUTHOR_PK,
        "authorName": "a",
        "authorUrl": None,
        "license": "open-source",
        "priceUsd": None,
        "requiredTier": 0,
        "requiresApiKey": False,
        "apiKeyInstructions": None,
        "category": "tools",
        "maturity": "experimental",
        "tags": [],
        "mcpTransport": "stdio",
        "mcpCommand": "echo",
        "mcpUrl": None,
        "icon": None,
        "repositoryUrl": None,
        "homepageUrl": None,
        "installCount": 0,
        "ratingMean": None,
        "ratingCount": 0,
        "status": "active",
        "createdAt": "2026-10-19T12:00:00",
        "updatedAt": "2026-10-19T12:00:00",
    }
    body.update(overrides)
    return body


def installation_json(**overrides) -> dict:
    body = {
        "id": str(uuid.uuid4()),
        "packageId": PACKAGE_PK,
        "agentId": "bot1",
        "userId": str(uuid.uuid4()),
        "installerTier": "free",
        "status": "active",
        "configuration": None,
        "installedAt": "2026-10-19T12:00:00",
        "updatedAt": "2026-10-19T12:00:00",
    }
    body.update(overrides)
    return body


def user_json(**overrides) -> dict:
    body = {
        "id": AUTHOR_PK,
        "githubUsername": "u1",
        "displayName": "U1",
        "email": None,
        "avatarUrl": None,
        "bio": None,
        "websiteUrl": None,
        "tier": "free",
        "role": "user",
        "isVerifiedCreator": False,
        "totalPackages": 0,
        "totalEarningsUsd": "0.0000",
        "createdAt": "2026-10-19T12:00:00",
        "lastLoginAt": "2026-10-19T12:00:00",
    }
    body.update(overrides)
    return body


def make_client(handler, api_key: str | None = "yg_test") -> RegistryClient:
    return RegistryClient("https://registry.test", api_key=api_key, transport=httpx.MockTransport(handler))


def test_sends_bearer_and_parses_package():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        seen["path"] = request.url.path
        return httpx.Response(200, json=package_json(ratingMean=4.5, ratingCount=2))

    with make_client(handler) as client:
        package = client.get_by_package_id("echo")

    assert seen == {"auth": "Bearer yg_test", "path": "/v1/packages/by-name/echo"}
    assert str(package.id) == PACKAGE_PK
    assert package.rating_mean == 4.5


def test_search_drops_unset_params():
    def handler(request: httpx.Request) -> httpx.Response:
        assert dict(request.url.params) == {"q": "echo", "limit": "5"}
        return httpx.Response(200, json={"data": [package_json()], "total": 1, "limit": 5, "offset": 0})

    with make_client(handler) as client:
        page = client.search("echo", limit=5)
    assert page.total == 1
    assert page.data[0].package_id == "echo"


def test_error_envelope_becomes_exception():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            403,
            json={"error": "Requires the 'legendary' tier", "code": "FORBIDDEN", "details": {"requiredTier": 2}},
        )

    with make_client(handler) as client, pytest.raises(RegistryApiError) as excinfo:
        client.install(PACKAGE_PK, "bot1")

    err = excinfo.value
    assert err.status == 403
    assert err.code == "FORBIDDEN"
    assert err.details == {"requiredTier": 2}
    assert not err.is_network


def test_non_json_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="upstream down")

    with make_client(handler) as client, pytest.raises(RegistryApiError) as excinfo:
        client.get_me()
    assert excinfo.value.code == "NETWORK"
    assert excinfo.value.is_network


def test_transport_error_is_network():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with make_client(handler) as client, pytest.raises(RegistryApiError) as excinfo:
        client.get_discovery()
    assert excinfo.value.status == 0
    assert excinfo.value.code == "NETWORK"
    assert "registry.test" in excinfo.value.message


def test_install_reports_created_flag():
    responses = iter([httpx.Response(201, json=installation_json()), httpx.Response(200, json=installation_json())])

    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content) == {"packageId": PACKAGE_PK, "agentId": "bot1"}
        return next(responses)

    with make_client(handler) as client:
        assert client.install(PACKAGE_PK, "bot1")[1] is True
        assert client.install(PACKAGE_PK, "bot1")[1] is False


def test_resolve_package_falls_back_to_surrogate_id():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        if "/by-name/" in request.url.path:
            return httpx.Response(404, json={"error": "not found", "code": "NOT_FOUND"})
        return httpx.Response(200, json=package_json())

    with make_client(handler) as client:
        package = client.resolve_package(PACKAGE_PK)
    assert package.package_id == "echo"
    assert calls == [f"/v1/packages/by-name/{PACKAGE_PK}", f"/v1/packages/{PACKAGE_PK}"]


def test_resolve_package_not_found_for_plain_names():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"error": "Package 'nope' not found", "code": "NOT_FOUND"})

    with make_client(handler) as client, pytest.raises(RegistryApiError) as excinfo:
        client.resolve_package("nope")
    assert excinfo.value.status == 404


def test_publish_serializes_camel_case():
    request = PublishPackageRequest.model_validate(
        {
            "packageId": "gold",
            "version": "1.0.0",
            "displayName": "Gold",
            "description": "d",
            "authorName": "a",
            "license": "premium",
            "priceUsd": "5",
            "requiredTier": 2,
            "mcpTransport": "stdio",
            "mcpCommand": "gold",
        }
    )

    def handler(request: httpx.Request) -> httpx.Response:
        sent = json.loads(request.content)
        assert sent["packageId"] == "gold"
        assert sent["priceUsd"] == "5"
        assert sent["requiredTier"] == 2
        assert "mcpUrl" not in sent
        return httpx.Response(201, json=package_json(packageId="gold", license="premium", priceUsd="5.0000"))

    with make_client(handler) as client:
        package = client.publish(request)
    assert str(package.price_usd) == "5.0000"


def test_anonymous_client_sends_no_authorization():
    def handler(request: httpx.Request) -> httpx.Response:
        assert "Authorization" not in request.headers
        return httpx.Response(200, json={"registries": []})

    with make_client(handler, api_key=None) as client:
        assert client.get_discovery().registries == []


def test_search_sends_repeated_tags_and_filters():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params.get_list("tag") == ["audio", "tts"]
        assert request.url.params["minRating"] == "4"
        assert request.url.params["maxPriceUsd"] == "2.5"
        assert request.url.params["sort"] == "name"
        return httpx.Response(200, json={"data": [], "total": 0, "limit": 20, "offset": 0})

    with make_client(handler) as client:
        client.search(tags=["audio", "tts"], min_rating=4, max_price_usd=2.5, sort="name")


def test_update_profile_sends_only_given_fields():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "PATCH"
        assert request.url.path == "/v1/users/me"
        assert json.loads(request.content) == {"bio": "", "websiteUrl": "https://x.example"}
        return httpx.Response(200, json={**user_json(), "websiteUrl": "https://x.example"})

    with make_client(handler) as client:
        user = client.update_profile(bio="", website_url="https://x.example")
    assert user.website_url == "https://x.example"


def test_get_public_user():
    user_id = str(uuid.uuid4())
    public = {k: v for k, v in user_json(id=user_id).items() if k not in ("email", "tier", "role", "totalEarningsUsd")}

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == f"/v1/users/{user_id}"
        return httpx.Response(200, json=public)

    with make_client(handler) as client:
        assert str(client.get_user(user_id).id) == user_id


def test_uninstall_and_agent_installations():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append((request.method, request.url.path))
        if request.method == "DELETE":
            return httpx.Response(204)
        return httpx.Response(200, json=[installation_json(agentId="bot1")])

    with make_client(handler) as client:
        rows = client.get_agent_installations("bot1")
        client.uninstall(rows[0].id)
    assert calls == [("GET", "/v1/installations/agent/bot1"), ("DELETE", f"/v1/installations/{rows[0].id}")]


def test_mint_sends_edition_terms():
    def handler(request: httpx.Request) -> httpx.Response:
        sent = json.loads(request.content)
        assert sent == {"packageId": PACKAGE_PK, "rarity": "rare", "maxEditions": 50, "creatorRoyaltyPercent": "80"}
        return httpx.Response(
            201,
            json={
                "id": str(uuid.uuid4()),
                "packageId": PACKAGE_PK,
                "ownerId": AUTHOR_PK,
                "tokenId": "ygm_abc",
                "rarity": "rare",
                "maxEditions": 50,
                "creatorRoyaltyPercent": "80.00",
                "mintedAt": "2026-10-19T12:00:00",
            },
        )

    with make_client(handler) as client:
        minted = client.mint(PACKAGE_PK, "rare", max_editions=50, creator_royalty_percent=Decimal("80"))
    assert minted.max_editions == 50
    assert minted.creator_royalty_percent == Decimal("80.00")
