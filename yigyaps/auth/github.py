"""GitHub OAuth: turn a login code into the profile a registry user is keyed on."""

from dataclasses import dataclass
from urllib.parse import urlencode

import httpx

AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
TOKEN_URL = "https://github.com/login/oauth/access_token"
API_URL = "https://api.github.com"
SCOPES = "read:user user:email"


@dataclass(frozen=True)
class GitHubProfile:
    github_id: str
    login: str
    name: str | None = None
    email: str | None = None
    avatar_url: str | None = None


def authorize_url(state: str, client_id: str, callback_url: str) -> str:
    query = urlencode({"client_id": client_id, "redirect_uri": callback_url, "scope": SCOPES, "state": state})
    return f"{AUTHORIZE_URL}?{query}"


async def _access_token(
    client: httpx.AsyncClient, code: str, client_id: str, client_secret: str, callback_url: str
) -> str:
    resp = await client.post(
        TOKEN_URL,
        data={"client_id": client_id, "client_secret": client_secret, "code": code, "redirect_uri": callback_url},
        headers={"Accept": "application/json"},
    )
    resp.raise_for_status()
    payload = resp.json()
    token = payload.get("access_token")
    if not token:
        # GitHub answers 200 with an error body for bad or reused codes.
        raise ValueError(payload.get("error_description") or payload.get("error") or "GitHub rejected the login code")
    return str(token)


async def _primary_email(client: httpx.AsyncClient) -> str | None:
    resp = await client.get(f"{API_URL}/user/emails")
    if resp.status_code != 200:
        return None
    for entry in resp.json():
        if entry.get("primary") and entry.get("verified"):
            return str(entry["email"])
    return None


async def fetch_profile(
    code: str,
    client_id: str,
    client_secret: str,
    callback_url: str,
    transport: httpx.AsyncBaseTransport | None = None,
) -> GitHubProfile:
    """Exchange *code* for a token and load the signed-in GitHub account.

    Raises ``ValueError`` when GitHub rejects the code and ``httpx.HTTPError``
    when GitHub cannot be reached.
    """
    async with httpx.AsyncClient(timeout=10, transport=transport) as client:
        token = await _access_token(client, code, client_id, client_secret, callback_url)
        client.headers.update({"Authorization": f"Bearer {token}", "Accept": "application/vnd.github+json"})
        resp = await client.get(f"{API_URL}/user")
        resp.raise_for_status()
        user = resp.json()
        email = user.get("email") or await _primary_email(client)

    return GitHubProfile(
        github_id=str(user["id"]),
        login=str(user["login"]),
        name=user.get("name"),
        email=email,
        avatar_url=user.get("avatar_url"),
    )
