import json
import uuid
from datetime import timedelta

import httpx
import pytest
from click.testing import CliRunner

from tests.test_client import PACKAGE_PK, installation_json, package_json
from yigyaps.cli import main as cli
from yigyaps.cli.config import CliConfig, config_path, load_config, save_config
from yigyaps.client import RegistryClient

USER_JSON = {
    "id": str(uuid.uuid4()),
    "githubUsername": "u1",
    "displayName": "U1",
    "email": None,
    "avatarUrl": None,
    "tier": "free",
    "role": "user",
    "isVerifiedCreator": False,
    "totalPackages": 0,
    "totalEarningsUsd": "0.0000",
    "createdAt": "2026-10-19T12:00:00",
    "lastLoginAt": "2026-10-19T12:00:00",
}


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def config_home(tmp_path, monkeypatch):
    monkeypatch.setenv("YIGYAPS_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.delenv("YIGYAPS_REGISTRY_URL", raising=False)
    return tmp_path / "config"


@pytest.fixture
def registry(monkeypatch):
    """Route the CLI's client to a handler; tests set ``registry.handler``."""

    class Registry:
        handler = None
        requests: list[httpx.Request] = []

    state = Registry()
    state.requests = []

    def dispatch(request: httpx.Request) -> httpx.Response:
        state.requests.append(request)
        return state.handler(request)

    def fake_make_client(config, api_key=None):
        return RegistryClient(
            config.effective_registry_url,
            api_key=api_key or config.api_key,
            transport=httpx.MockTransport(dispatch),
        )

    monkeypatch.setattr(cli, "make_client", fake_make_client)
    return state


def logged_in(token: str = "yg_stored") -> None:
    save_config(CliConfig(api_key=token))


# ── Config ────────────────────────────────────────────────────────────────────


def test_config_round_trip_is_camel_case_and_private(config_home):
    path = save_config(CliConfig(api_key="yg_x", first_run=False))
    raw = json.loads(path.read_text())
    assert raw["apiKey"] == "yg_x"
    assert raw["firstRun"] is False
    assert "registryUrl" in raw
    assert path.stat().st_mode & 0o777 == 0o600
    assert load_config().api_key == "yg_x"


def test_registry_url_env_override(monkeypatch):
    monkeypatch.setenv("YIGYAPS_REGISTRY_URL", "http://localhost:8000")
    assert CliConfig().effective_registry_url == "http://localhost:8000"


def test_corrupt_config_is_a_user_error(runner, config_home):
    config_home.mkdir(parents=True)
    config_path().write_text("{not json")
    result = runner.invoke(cli.main, ["whoami"])
    assert result.exit_code == 1
    assert "unreadable" in result.output


# ── Identity ──────────────────────────────────────────────────────────────────


def test_login_with_api_key(runner, registry):
    registry.handler = lambda request: httpx.Response(200, json=USER_JSON)
    result = runner.invoke(cli.main, ["login", "--api-key", "yg_new"])
    assert result.exit_code == 0, result.output
    assert "Logged in" in result.output
    assert registry.requests[0].headers["Authorization"] == "Bearer yg_new"
    config = load_config()
    assert config.api_key == "yg_new"
    assert config.last_login


def test_login_prompts_for_key(runner, registry):
    registry.handler = lambda request: httpx.Response(200, json=USER_JSON)
    result = runner.invoke(cli.main, ["login"], input="yg_typed\n")
    assert result.exit_code == 0, result.output
    assert load_config().api_key == "yg_typed"


def test_login_with_oauth_code(runner, registry):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/auth/login":
            assert json.loads(request.content) == {"code": "abc"}
            return httpx.Response(
                200, json={"accessToken": "jwt-token", "tokenType": "bearer", "expiresIn": 60, "user": USER_JSON}
            )
        assert request.headers["Authorization"] == "Bearer jwt-token"
        return httpx.Response(200, json=USER_JSON)

    registry.handler = handler
    result = runner.invoke(cli.main, ["login", "--code", "abc"])
    assert result.exit_code == 0, result.output
    assert load_config().api_key == "jwt-token"


def test_login_rejected_key(runner, registry):
    registry.handler = lambda request: httpx.Response(401, json={"error": "Invalid", "code": "UNAUTHENTICATED"})
    result = runner.invoke(cli.main, ["login", "--api-key", "yg_bad"])
    assert result.exit_code == 1
    assert "yigyaps login" in result.output
    assert load_config().api_key is None


def test_logout(runner):
    logged_in()
    result = runner.invoke(cli.main, ["logout"])
    assert result.exit_code == 0
    assert load_config().api_key is None


def test_whoami_requires_login(runner):
    result = runner.invoke(cli.main, ["whoami"])
    assert result.exit_code == 1
    assert "yigyaps login" in result.output


def test_whoami_expired_token(runner, registry):
    from yigyaps.auth.jwt import create_access_token
    from yigyaps.models.user import User

    user = User(id=uuid.uuid4(), github_username="u1", display_name="U1", tier="free", role="user")
    logged_in(create_access_token(user, expires_delta=timedelta(seconds=-5)))
    registry.handler = lambda request: httpx.Response(
        401,
        json={"error": "Token has expired. Run `yigyaps login` to sign in again.", "code": "UNAUTHENTICATED"},
    )

    result = runner.invoke(cli.main, ["whoami"])
    assert result.exit_code == 1
    assert "expired" in result.output
    assert "Hint" in result.output


def test_whoami_json(runner, registry):
    logged_in()
    registry.handler = lambda request: httpx.Response(200, json=USER_JSON)
    result = runner.invoke(cli.main, ["whoami", "--json"])
    assert result.exit_code == 0
    assert json.loads(result.output)["githubUsername"] == "u1"


# ── Catalog ───────────────────────────────────────────────────────────────────


def test_search_table(runner, registry):
    registry.handler = lambda request: httpx.Response(
        200, json={"data": [package_json(installCount=7)], "total": 1, "limit": 20, "offset": 0}
    )
    result = runner.invoke(cli.main, ["search", "echo", "--sort", "installs"])
    assert result.exit_code == 0, result.output
    assert "echo" in result.output
    assert registry.requests[0].url.params["sort"] == "installs"


def test_search_json(runner, registry):
    registry.handler = lambda request: httpx.Response(200, json={"data": [], "total": 0, "limit": 20, "offset": 0})
    result = runner.invoke(cli.main, ["search", "--json"])
    assert result.exit_code == 0
    assert json.loads(result.output)["total"] == 0


def test_search_filters(runner, registry):
    registry.handler = lambda request: httpx.Response(200, json={"data": [], "total": 0, "limit": 20, "offset": 0})
    result = runner.invoke(
        cli.main, ["search", "--tag", "audio", "--tag", "tts", "--min-rating", "4", "--max-price", "2", "--sort", "name"]
    )
    assert result.exit_code == 0, result.output
    params = registry.requests[0].url.params
    assert params.get_list("tag") == ["audio", "tts"]
    assert float(params["minRating"]) == 4
    assert float(params["maxPriceUsd"]) == 2
    assert params["sort"] == "name"


def test_search_bad_category_is_usage_error(runner):
    result = runner.invoke(cli.main, ["search", "--category", "games"])
    assert result.exit_code == 1


def test_info(runner, registry):
    registry.handler = lambda request: httpx.Response(200, json=package_json(tags=["audio"]))
    result = runner.invoke(cli.main, ["info", "echo"])
    assert result.exit_code == 0, result.output
    assert "Echo" in result.output
    assert "audio" in result.output


def test_info_not_found(runner, registry):
    registry.handler = lambda request: httpx.Response(404, json={"error": "Package 'x' not found", "code": "NOT_FOUND"})
    result = runner.invoke(cli.main, ["info", "x"])
    assert result.exit_code == 1
    assert "not found" in result.output


def test_server_error_exits_3(runner, registry):
    registry.handler = lambda request: httpx.Response(500, json={"error": "Internal Server Error", "code": "SYSTEM"})
    result = runner.invoke(cli.main, ["info", "echo"])
    assert result.exit_code == 3


def test_unreachable_registry_exits_3(runner, registry):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    registry.handler = handler
    result = runner.invoke(cli.main, ["search"])
    assert result.exit_code == 3
    assert "YIGYAPS_REGISTRY_URL" in result.output


# ── Install & list ────────────────────────────────────────────────────────────


def _install_handler(status: int = 201):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json=package_json())
        body = json.loads(request.content)
        assert body["packageId"] == PACKAGE_PK
        return httpx.Response(status, json=installation_json(agentId=body["agentId"]))

    return handler


def test_install_with_flags(runner, registry):
    logged_in()
    registry.handler = _install_handler()
    result = runner.invoke(cli.main, ["install", "echo", "--agent-id", "bot1", "--yes"])
    assert result.exit_code == 0, result.output
    assert "Installed" in result.output


def test_install_camel_case_agent_flag(runner, registry):
    logged_in()
    registry.handler = _install_handler(status=200)
    result = runner.invoke(cli.main, ["install", "echo", "--agentId", "bot1", "--yes"])
    assert result.exit_code == 0, result.output
    assert "Already installed" in result.output


def test_install_prompts(runner, registry):
    logged_in()
    registry.handler = _install_handler()
    result = runner.invoke(cli.main, ["install", "echo"], input="bot7\ny\n")
    assert result.exit_code == 0, result.output
    assert json.loads(registry.requests[-1].content)["agentId"] == "bot7"


def test_install_cancelled(runner, registry):
    logged_in()
    registry.handler = _install_handler()
    result = runner.invoke(cli.main, ["install", "echo", "--agent-id", "bot1"], input="n\n")
    assert result.exit_code == 0
    assert "Cancelled" in result.output
    assert all(r.method == "GET" for r in registry.requests)


def test_install_tier_gate_hint(runner, registry):
    logged_in()

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json=package_json(requiredTier=2))
        return httpx.Response(
            403,
            json={
                "error": "Requires the 'legendary' tier",
                "code": "FORBIDDEN",
                "details": {"requiredTier": 2, "requiredTierName": "legendary", "currentTier": "pro"},
            },
        )

    registry.handler = handler
    result = runner.invoke(cli.main, ["install", "echo", "--agent-id", "b", "--yes"])
    assert result.exit_code == 1
    assert "legendary" in result.output


def test_install_requires_login(runner):
    result = runner.invoke(cli.main, ["install", "echo", "--agent-id", "b", "--yes"])
    assert result.exit_code == 1
    assert "not logged in" in result.output


def test_list_installations(runner, registry):
    logged_in()
    registry.handler = lambda request: httpx.Response(
        200, json={"data": [installation_json(agentId="bot9")], "total": 1, "limit": 100, "offset": 0}
    )
    result = runner.invoke(cli.main, ["list"])
    assert result.exit_code == 0, result.output
    assert "bot9" in result.output


def _uninstall_handler(rows: list[dict]):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "DELETE":
            return httpx.Response(204)
        return httpx.Response(200, json={"data": rows, "total": len(rows), "limit": 100, "offset": 0})

    return handler


def test_uninstall_by_short_id(runner, registry):
    logged_in()
    row = installation_json()
    registry.handler = _uninstall_handler([row, installation_json()])
    result = runner.invoke(cli.main, ["uninstall", row["id"][:8], "--yes"])
    assert result.exit_code == 0, result.output
    assert "Uninstalled" in result.output
    assert registry.requests[-1].method == "DELETE"
    assert registry.requests[-1].url.path == f"/v1/installations/{row['id']}"


def test_uninstall_unknown_id(runner, registry):
    logged_in()
    registry.handler = _uninstall_handler([installation_json(id="aaaaaaaa-0000-0000-0000-000000000000")])
    result = runner.invoke(cli.main, ["uninstall", "bbbbbbbb", "--yes"])
    assert result.exit_code == 1
    assert "No installation" in result.output
    assert all(r.method == "GET" for r in registry.requests)


def test_uninstall_cancelled(runner, registry):
    logged_in()
    row = installation_json()
    registry.handler = _uninstall_handler([row])
    result = runner.invoke(cli.main, ["uninstall", row["id"]], input="n\n")
    assert result.exit_code == 0
    assert "Cancelled" in result.output
    assert all(r.method == "GET" for r in registry.requests)


# ── Publish ───────────────────────────────────────────────────────────────────


def _skill_dir(tmp_path, **overrides):
    manifest = {
        "packageId": "echo",
        "version": "0.1.0",
        "displayName": "Echo",
        "description": "d",
        "authorName": "a",
        "category": "tools",
        "mcpTransport": "stdio",
        "mcpCommand": "echo",
    }
    manifest.update(overrides)
    skill = tmp_path / "skill"
    skill.mkdir()
    (skill / "skill.json").write_text(json.dumps(manifest))
    (skill / "README.md").write_text("# Echo\n")
    return skill


def test_publish_dry_run(runner, tmp_path):
    skill = _skill_dir(tmp_path)
    result = runner.invoke(cli.main, ["publish", str(skill), "--dry-run", "--json"])
    assert result.exit_code == 0, result.output
    body = json.loads(result.output)
    assert body["packageId"] == "echo"
    assert body["readme"] == "# Echo\n"


def test_publish_invalid_manifest(runner, tmp_path):
    skill = _skill_dir(tmp_path, license="premium")
    result = runner.invoke(cli.main, ["publish", str(skill), "--dry-run"])
    assert result.exit_code == 1
    assert "priceUsd" in result.output


def test_publish_missing_manifest(runner, tmp_path):
    result = runner.invoke(cli.main, ["publish", str(tmp_path)])
    assert result.exit_code == 1
    assert "skill.json" in result.output


def test_publish(runner, registry, tmp_path):
    logged_in()
    skill = _skill_dir(tmp_path)
    registry.handler = lambda request: httpx.Response(201, json=package_json())
    result = runner.invoke(cli.main, ["publish", str(skill)])
    assert result.exit_code == 0, result.output
    assert "Published" in result.output
    sent = json.loads(registry.requests[0].content)
    assert sent["readme"] == "# Echo\n"


def test_publish_conflict(runner, registry, tmp_path):
    logged_in()
    skill = _skill_dir(tmp_path)
    registry.handler = lambda request: httpx.Response(409, json={"error": "already exists", "code": "CONFLICT"})
    result = runner.invoke(cli.main, ["publish", str(skill)])
    assert result.exit_code == 1


# ── Onboarding ────────────────────────────────────────────────────────────────


def test_onboarding_marks_first_run_done(runner):
    result = runner.invoke(cli.main, ["onboarding"], input="n\n")
    assert result.exit_code == 0, result.output
    assert "Welcome to YigYaps" in result.output
    assert load_config().first_run is False


def test_onboarding_with_login(runner, registry):
    registry.handler = lambda request: httpx.Response(200, json=USER_JSON)
    result = runner.invoke(cli.main, ["onboarding"], input="y\nyg_onboard\n")
    assert result.exit_code == 0, result.output
    config = load_config()
    assert config.api_key == "yg_onboard"
    assert config.first_run is False
