"""Synchronous Python SDK for the YigYaps registry API.

Responses are parsed into the same pydantic schemas the server emits, so
callers get typed objects (``SkillPackageOut``, ``InstallationOut``...) rather
than raw dicts. Every non-2xx response raises :class:`RegistryApiError`;
transport failures raise it with code ``NETWORK`` and status 0.
"""

import logging
import uuid
from decimal import Decimal
from typing import Any

import httpx
from pydantic import BaseModel

from yigyaps import __version__
from yigyaps.schemas import (
    ApiKeyCreated,
    Discovery,
    InstallationOut,
    MintOut,
    Page,
    PublicUserOut,
    PublishPackageRequest,
    ReviewOut,
    RoyaltySummary,
    SkillPackageOut,
    TokenResponse,
    UserOut,
)

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_URL = "https://api.yigyaps.com"
DEFAULT_TIMEOUT = 30.0

_STATUS_CODES = {
    400: "VALIDATION",
    401: "UNAUTHENTICATED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
    429: "RATE_LIMITED",
    502: "NETWORK",
    503: "NETWORK",
}


class RegistryApiError(Exception):
    def __init__(self, status: int, code: str, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.code = code
        self.message = message
        self.details = details

    @property
    def is_network(self) -> bool:
        return self.code == "NETWORK" or self.status == 0 or self.status >= 500

    def __str__(self) -> str:
        return f"{self.message} ({self.code})"


def _error_from_response(resp: httpx.Response) -> RegistryApiError:
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and "error" in body:
        code = body.get("code") or _STATUS_CODES.get(resp.status_code, "SYSTEM")
        return RegistryApiError(resp.status_code, code, str(body["error"]), body.get("details"))
    code = _STATUS_CODES.get(resp.status_code, "SYSTEM" if resp.status_code >= 500 else "ERROR")
    return RegistryApiError(resp.status_code, code, resp.reason_phrase or f"HTTP {resp.status_code}")


def _body(model: BaseModel | dict) -> dict:
    if isinstance(model, BaseModel):
        return model.model_dump(mode="json", by_alias=True, exclude_none=True)
    return model


class RegistryClient:
    """Thin wrapper over ``httpx.Client`` with one method per API operation.

    Args:
        registry_url: Base URL of the registry, without the ``/v1`` suffix.
        api_key: API key or session token sent as a bearer credential.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``).
    """

    def __init__(
        self,
        registry_url: str = DEFAULT_REGISTRY_URL,
        api_key: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.registry_url = registry_url.rstrip("/")
        headers = {"User-Agent": f"yigyaps-cli/{__version__}", "Accept": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._http = httpx.Client(base_url=self.registry_url, headers=headers, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "RegistryClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ── Transport ────────────────────────────────────────────────────────────

    def _request(self, method: str, path: str, *, params: dict | None = None, json: Any = None) -> httpx.Response:
        if params:
            params = {key: value for key, value in params.items() if value is not None}
        try:
            resp = self._http.request(method, path, params=params, json=json)
        except httpx.TransportError as exc:
            raise RegistryApiError(0, "NETWORK", f"Could not reach the registry at {self.registry_url}: {exc}")
        logger.debug("%s %s -> %d", method, path, resp.status_code)
        if resp.is_error:
            raise _error_from_response(resp)
        return resp

    def _get(self, path: str, **params: Any) -> Any:
        return self._request("GET", path, params=params).json()

    # ── Identity ─────────────────────────────────────────────────────────────

    def login(self, code: str) -> TokenResponse:
        return TokenResponse.model_validate(self._request("POST", "/v1/auth/login", json={"code": code}).json())

    def get_me(self) -> UserOut:
        return UserOut.model_validate(self._get("/v1/auth/me"))

    def update_profile(
        self, display_name: str | None = None, bio: str | None = None, website_url: str | None = None
    ) -> UserOut:
        """Change the caller's profile; pass an empty string to clear ``bio`` or ``website_url``."""
        body = {
            key: value
            for key, value in {"displayName": display_name, "bio": bio, "websiteUrl": website_url}.items()
            if value is not None
        }
        return UserOut.model_validate(self._request("PATCH", "/v1/users/me", json=body).json())

    def get_user(self, user_id: uuid.UUID | str) -> PublicUserOut:
        return PublicUserOut.model_validate(self._get(f"/v1/users/{user_id}"))

    def create_api_key(self, name: str, scopes: list[str] | None = None, expires_in_days: int | None = None) -> ApiKeyCreated:
        body = {"name": name, "scopes": scopes or [], "expiresInDays": expires_in_days}
        return ApiKeyCreated.model_validate(self._request("POST", "/v1/auth/api-keys", json=body).json())

    # ── Catalog ──────────────────────────────────────────────────────────────

    def search(
        self,
        q: str | None = None,
        *,
        category: str | None = None,
        maturity: str | None = None,
        license: str | None = None,
        author: str | None = None,
        tags: list[str] | None = None,
        min_rating: float | Decimal | None = None,
        max_price_usd: float | Decimal | None = None,
        sort: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> Page[SkillPackageOut]:
        data = self._get(
            "/v1/packages",
            q=q,
            category=category,
            maturity=maturity,
            license=license,
            author=author,
            tag=tags or None,
            minRating=min_rating,
            maxPriceUsd=max_price_usd,
            sort=sort,
            limit=limit,
            offset=offset,
        )
        return Page[SkillPackageOut].model_validate(data)

    def get_by_id(self, id: uuid.UUID | str) -> SkillPackageOut:
        return SkillPackageOut.model_validate(self._get(f"/v1/packages/{id}"))

    def get_by_package_id(self, package_id: str) -> SkillPackageOut:
        return SkillPackageOut.model_validate(self._get(f"/v1/packages/by-name/{package_id}"))

    def resolve_package(self, ref: str) -> SkillPackageOut:
        """Look *ref* up as a package id first, then as a surrogate id."""
        try:
            return self.get_by_package_id(ref)
        except RegistryApiError as exc:
            if exc.status != 404:
                raise
            try:
                surrogate = uuid.UUID(ref)
            except ValueError:
                raise exc
            return self.get_by_id(surrogate)

    def publish(self, request: PublishPackageRequest | dict) -> SkillPackageOut:
        return SkillPackageOut.model_validate(self._request("POST", "/v1/packages", json=_body(request)).json())

    def update_package(self, id: uuid.UUID | str, patch: dict) -> SkillPackageOut:
        return SkillPackageOut.model_validate(self._request("PATCH", f"/v1/packages/{id}", json=patch).json())

    def delete_package(self, id: uuid.UUID | str) -> None:
        self._request("DELETE", f"/v1/packages/{id}")

    # ── Installations ────────────────────────────────────────────────────────

    def install(
        self, package_id: uuid.UUID | str, agent_id: str, configuration: dict | None = None
    ) -> tuple[InstallationOut, bool]:
        """Install a package; returns ``(installation, created)``."""
        body = {"packageId": str(package_id), "agentId": agent_id}
        if configuration is not None:
            body["configuration"] = configuration
        resp = self._request("POST", "/v1/installations", json=body)
        return InstallationOut.model_validate(resp.json()), resp.status_code == 201

    def get_installations(self, limit: int | None = None, offset: int | None = None) -> Page[InstallationOut]:
        return Page[InstallationOut].model_validate(self._get("/v1/installations", limit=limit, offset=offset))

    def update_installation(self, id: uuid.UUID | str, status: str) -> InstallationOut:
        resp = self._request("PATCH", f"/v1/installations/{id}", json={"status": status})
        return InstallationOut.model_validate(resp.json())

    def get_agent_installations(self, agent_id: str) -> list[InstallationOut]:
        return [InstallationOut.model_validate(row) for row in self._get(f"/v1/installations/agent/{agent_id}")]

    def uninstall(self, id: uuid.UUID | str) -> None:
        self._request("DELETE", f"/v1/installations/{id}")

    # ── Reviews ──────────────────────────────────────────────────────────────

    def create_review(
        self, package_id: uuid.UUID | str, rating: int, title: str | None = None, comment: str | None = None
    ) -> ReviewOut:
        body = {"rating": rating, "title": title, "comment": comment}
        resp = self._request("POST", f"/v1/packages/{package_id}/reviews", json=body)
        return ReviewOut.model_validate(resp.json())

    def list_reviews(
        self, package_id: uuid.UUID | str, sort: str | None = None, limit: int | None = None, offset: int | None = None
    ) -> Page[ReviewOut]:
        data = self._get(f"/v1/packages/{package_id}/reviews", sort=sort, limit=limit, offset=offset)
        return Page[ReviewOut].model_validate(data)

    # ── Ledger ───────────────────────────────────────────────────────────────

    def mint(
        self,
        package_id: uuid.UUID | str,
        rarity: str = "common",
        max_editions: int | None = None,
        creator_royalty_percent: Decimal | None = None,
    ) -> MintOut:
        body: dict[str, Any] = {"packageId": str(package_id), "rarity": rarity}
        if max_editions is not None:
            body["maxEditions"] = max_editions
        if creator_royalty_percent is not None:
            body["creatorRoyaltyPercent"] = str(creator_royalty_percent)
        resp = self._request("POST", "/v1/mints", json=body)
        return MintOut.model_validate(resp.json())

    def get_royalties(self) -> RoyaltySummary:
        return RoyaltySummary.model_validate(self._get("/v1/royalties/me"))

    def get_discovery(self) -> Discovery:
        return Discovery.model_validate(self._get("/.well-known/mcp.json"))
