"""YigYaps CLI: the main entry point for publishing and installing MCP skills."""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

import click
import pydantic
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from yigyaps import __version__
from yigyaps.cli.config import CliConfig, load_config, save_config
from yigyaps.cli.errors import LOGIN_HINT, CliError, ExitCode, from_api_error
from yigyaps.client import RegistryApiError, RegistryClient
from yigyaps.schemas import PublishPackageRequest, SkillPackageOut
from yigyaps.types import Category, SearchSort, tier_for_rank

console = Console()
err_console = Console(stderr=True)

BANNER = r"""
 __   ___      __   __
 \ \ / (_) __ _\ \ / /_ _ _ __  ___
  \ V /| |/ _` |\ V / _` | '_ \/ __|
   | | | | (_| | | | (_| | |_) \__ \
   |_| |_|\__, | |_|\__,_| .__/|___/
          |___/          |_|
"""


def _report(error: CliError) -> None:
    err_console.print(f"[red]Error:[/] {escape(error.message)}", soft_wrap=True)
    if error.hint:
        err_console.print(f"[dim]Hint:[/] {escape(error.hint)}", soft_wrap=True)


class YigYapsGroup(click.Group):
    """Group that turns every failure into a message plus a documented exit code."""

    def invoke(self, ctx: click.Context):
        try:
            return super().invoke(ctx)
        except click.exceptions.Exit:
            raise
        except click.Abort:
            err_console.print("Cancelled")
            ctx.exit(ExitCode.SUCCESS)
        except click.UsageError as exc:
            exc.show()
            ctx.exit(ExitCode.USER_ERROR)
        except click.ClickException:
            raise
        except CliError as exc:
            _report(exc)
            ctx.exit(exc.exit_code)
        except RegistryApiError as exc:
            error = from_api_error(exc)
            _report(error)
            ctx.exit(error.exit_code)
        except Exception as exc:
            if ctx.obj and ctx.obj.get("verbose"):
                err_console.print_exception()
            _report(CliError(f"Unexpected error: {exc}", ExitCode.SYSTEM_ERROR))
            ctx.exit(ExitCode.SYSTEM_ERROR)


def make_client(config: CliConfig, api_key: str | None = None) -> RegistryClient:
    return RegistryClient(config.effective_registry_url, api_key=api_key or config.api_key)


def _require_login(config: CliConfig) -> None:
    if not config.api_key:
        raise CliError("You are not logged in.", ExitCode.USER_ERROR, hint=LOGIN_HINT)


def _print_json(data: object) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def _dump(model: pydantic.BaseModel) -> dict:
    return model.model_dump(mode="json", by_alias=True)


def _rating(package: SkillPackageOut) -> str:
    if package.rating_mean is None:
        return "-"
    return f"{package.rating_mean:.1f} ({package.rating_count})"


@click.group(cls=YigYapsGroup)
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Log HTTP traffic and show tracebacks")
@click.pass_context
def main(ctx: click.Context, verbose: bool):
    """YigYaps: publish, discover and install MCP skills."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


# ── Identity ─────────────────────────────────────────────────────────


@main.command()
@click.option("--api-key", default=None, help="API key or session token to store")
@click.option("--code", default=None, help="GitHub OAuth code to exchange for a session token")
def login(api_key: str | None, code: str | None):
    """Sign in to the registry and remember the credential."""
    config = load_config()

    if code:
        with make_client(config) as client:
            token = client.login(code).access_token
    elif api_key:
        token = api_key
    else:
        console.print(f"Create an API key at [cyan]{escape(config.effective_registry_url)}[/] and paste it below.")
        token = click.prompt("API key", hide_input=True).strip()
        if not token:
            raise CliError("No credential entered.", ExitCode.USER_ERROR)

    with make_client(config, api_key=token) as client:
        try:
            me = client.get_me()
        except RegistryApiError as exc:
            if exc.status == 401:
                raise CliError("The registry rejected that credential.", ExitCode.USER_ERROR, hint=LOGIN_HINT)
            raise

    config.api_key = token
    config.last_login = datetime.now(UTC).isoformat()
    save_config(config)
    console.print(f"[green]Logged in[/] as [bold]{escape(me.github_username)}[/] ({me.tier} tier)")


@main.command()
def logout():
    """Forget the stored credential."""
    config = load_config()
    if not config.api_key:
        console.print("Not logged in.")
        return
    config.api_key = None
    save_config(config)
    console.print("[green]Logged out.[/]")


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def whoami(as_json: bool):
    """Show the signed-in account."""
    config = load_config()
    _require_login(config)
    with make_client(config) as client:
        me = client.get_me()
    if as_json:
        _print_json(_dump(me))
        return
    console.print(
        Panel(
            f"[bold]{escape(me.display_name)}[/] (@{escape(me.github_username)})\n"
            f"Tier: {me.tier}   Role: {me.role}\n"
            f"Packages: {me.total_packages}   Earnings: ${me.total_earnings_usd}",
            title="YigYaps account",
        )
    )


# ── Catalog ──────────────────────────────────────────────────────────


@main.command()
@click.argument("query", required=False)
@click.option("--category", type=click.Choice([c.value for c in Category]), default=None)
@click.option("--tag", "tags", multiple=True, help="Only packages with this tag (repeatable)")
@click.option("--min-rating", type=click.FloatRange(0, 5), default=None)
@click.option("--max-price", type=click.FloatRange(min=0), default=None, help="Highest price in USD")
@click.option("--sort", type=click.Choice([s.value for s in SearchSort]), default=None)
@click.option("--limit", type=click.IntRange(1, 100), default=20, show_default=True)
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def search(
    query: str | None,
    category: str | None,
    tags: tuple[str, ...],
    min_rating: float | None,
    max_price: float | None,
    sort: str | None,
    limit: int,
    as_json: bool,
):
    """Search the registry for skills."""
    config = load_config()
    with make_client(config) as client:
        page = client.search(
            query,
            category=category,
            tags=list(tags),
            min_rating=min_rating,
            max_price_usd=max_price,
            sort=sort,
            limit=limit,
        )

    if as_json:
        _print_json(_dump(page))
        return
    if not page.data:
        console.print("[yellow]No packages found.[/]")
        return

    table = Table(title=f"Packages ({page.total} found)")
    table.add_column("Package", style="cyan")
    table.add_column("Version")
    table.add_column("Name")
    table.add_column("Installs", justify="right", style="green")
    table.add_column("Rating", justify="right")
    table.add_column("Tier")
    for package in page.data:
        table.add_row(
            package.package_id,
            package.version,
            package.display_name,
            str(package.install_count),
            _rating(package),
            tier_for_rank(package.required_tier),
        )
    console.print(table)


@main.command()
@click.argument("ref")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def info(ref: str, as_json: bool):
    """Show one package. REF is a package id or a surrogate id."""
    config = load_config()
    with make_client(config) as client:
        package = client.resolve_package(ref)

    if as_json:
        _print_json(_dump(package))
        return

    price = f"${package.price_usd}" if package.price_usd is not None else "free"
    endpoint = package.mcp_command if package.mcp_transport == "stdio" else package.mcp_url
    lines = [
        f"[bold]{escape(package.display_name)}[/] {package.package_id}@{package.version}",
        escape(package.description),
        "",
        f"Author:    {escape(package.author_name)}",
        f"Category:  {package.category}   Maturity: {package.maturity}",
        f"License:   {package.license}   Price: {price}   Tier: {tier_for_rank(package.required_tier)}",
        f"Transport: {package.mcp_transport}   {escape(endpoint or '')}",
        f"Installs:  {package.install_count}   Rating: {_rating(package)}",
        f"Id:        {package.id}",
    ]
    if package.tags:
        lines.append(f"Tags:      {', '.join(package.tags)}")
    console.print(Panel("\n".join(lines), title="Package"))


# ── Installations ────────────────────────────────────────────────────


@main.command()
@click.argument("ref")
@click.option("--agent-id", "--agentId", "agent_id", default=None, help="Agent to install the skill on")
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def install(ref: str, agent_id: str | None, yes: bool, as_json: bool):
    """Install a skill on one of your agents. REF is a package id or a surrogate id."""
    config = load_config()
    _require_login(config)
    with make_client(config) as client:
        package = client.resolve_package(ref)
        if not agent_id:
            agent_id = click.prompt("Agent id").strip()
        if not yes:
            click.confirm(
                f"Install {package.package_id}@{package.version} on agent '{agent_id}'?",
                default=True,
                abort=True,
            )
        installation, created = client.install(package.id, agent_id)

    if as_json:
        _print_json(_dump(installation))
        return
    if created:
        console.print(f"[green]Installed[/] {package.package_id}@{package.version} on agent '{escape(agent_id)}'")
    else:
        console.print(f"[yellow]Already installed[/] on agent '{escape(agent_id)}'")
    console.print(f"Installation id: {installation.id}")


@main.command(name="list")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def list_installations(as_json: bool):
    """List your installations."""
    config = load_config()
    _require_login(config)
    with make_client(config) as client:
        page = client.get_installations(limit=100)

    if as_json:
        _print_json(_dump(page))
        return
    if not page.data:
        console.print("[yellow]No installations yet.[/]")
        return

    table = Table(title=f"Installations ({page.total})")
    table.add_column("Id", style="dim")
    table.add_column("Package")
    table.add_column("Agent", style="cyan")
    table.add_column("Status")
    table.add_column("Installed")
    for row in page.data:
        table.add_row(
            str(row.id)[:8], str(row.package_id)[:8], row.agent_id, row.status, row.installed_at.strftime("%Y-%m-%d")
        )
    console.print(table)


@main.command()
@click.argument("installation")
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt")
def uninstall(installation: str, yes: bool):
    """Revoke an installation. INSTALLATION is its id or the short id shown by `list`."""
    config = load_config()
    _require_login(config)
    with make_client(config) as client:
        matches = [row for row in client.get_installations(limit=100).data if str(row.id).startswith(installation)]
        if len(matches) != 1:
            found = "No installation" if not matches else f"{len(matches)} installations"
            raise CliError(f"{found} matching '{installation}'", hint="Run `yigyaps list` to see your installations.")
        row = matches[0]
        if not yes:
            click.confirm(f"Uninstall {str(row.package_id)[:8]} from agent '{row.agent_id}'?", default=True, abort=True)
        client.uninstall(row.id)
    console.print(f"[green]Uninstalled[/] {row.id}")


# ── Publish ──────────────────────────────────────────────────────────


def read_manifest(directory: Path) -> PublishPackageRequest:
    """Load ``skill.json`` (plus ``README.md``) from *directory* and validate it."""
    manifest_path = directory / "skill.json"
    if not manifest_path.is_file():
        raise CliError(f"No skill.json in {directory}", ExitCode.USER_ERROR)
    try:
        data = json.loads(manifest_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise CliError(f"skill.json is not valid JSON: {exc}", ExitCode.USER_ERROR)
    if not isinstance(data, dict):
        raise CliError("skill.json must contain a JSON object", ExitCode.USER_ERROR)

    readme_path = directory / "README.md"
    if "readme" not in data and readme_path.is_file():
        data["readme"] = readme_path.read_text(encoding="utf-8")

    try:
        return PublishPackageRequest.model_validate(data)
    except pydantic.ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'skill.json'}: {err['msg']}" for err in exc.errors()
        )
        raise CliError(f"skill.json is invalid: {problems}", ExitCode.USER_ERROR)


@main.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--dry-run", is_flag=True, help="Validate only; do not publish")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def publish(directory: Path, dry_run: bool, as_json: bool):
    """Publish the skill described by DIRECTORY/skill.json."""
    request = read_manifest(directory)

    if dry_run:
        if as_json:
            _print_json(request.model_dump(mode="json", by_alias=True, exclude_none=True))
        else:
            console.print(f"[green]v[/] {request.package_id}@{request.version} is valid (dry run, nothing published)")
        return

    config = load_config()
    _require_login(config)
    with make_client(config) as client:
        package = client.publish(request)

    if as_json:
        _print_json(_dump(package))
        return
    console.print(f"[green]Published[/] {package.package_id}@{package.version}")
    console.print(f"Package id: {package.id}")


# ── Onboarding ───────────────────────────────────────────────────────


@main.command()
@click.pass_context
def onboarding(ctx: click.Context):
    """First-run walkthrough: sign in and learn the basic commands."""
    config = load_config()
    console.print(Panel(BANNER.strip("\n"), title=f"Welcome to YigYaps {__version__}", expand=False))

    if config.api_key:
        console.print("You are already logged in.")
    elif click.confirm("Log in now?", default=True):
        ctx.invoke(login)
        config = load_config()

    config.first_run = False
    save_config(config)
    console.print(
        "\nNext steps:\n"
        "  yigyaps search <query>      find skills\n"
        "  yigyaps install <package>   add one to an agent\n"
        "  yigyaps publish <dir>       share your own"
    )


if __name__ == "__main__":
    main()
