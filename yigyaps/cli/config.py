"""Per-user CLI configuration stored as JSON in the click app directory.

The directory can be moved with ``YIGYAPS_CONFIG_DIR`` and the registry
endpoint overridden with ``YIGYAPS_REGISTRY_URL``.
"""

import json
import os
import tempfile
from pathlib import Path

import click
import pydantic

from yigyaps.cli.errors import CliError, ExitCode
from yigyaps.client import DEFAULT_REGISTRY_URL
from yigyaps.schemas.common import CamelModel

CONFIG_DIR_ENV = "YIGYAPS_CONFIG_DIR"
REGISTRY_URL_ENV = "YIGYAPS_REGISTRY_URL"
CONFIG_FILENAME = "config.json"


class CliConfig(CamelModel):
    registry_url: str = DEFAULT_REGISTRY_URL
    api_key: str | None = None
    last_login: str | None = None
    first_run: bool = True

    @property
    def effective_registry_url(self) -> str:
        return os.environ.get(REGISTRY_URL_ENV) or self.registry_url


def config_dir() -> Path:
    return Path(os.environ.get(CONFIG_DIR_ENV) or click.get_app_dir("yigyaps"))


def config_path() -> Path:
    return config_dir() / CONFIG_FILENAME


def load_config() -> CliConfig:
    path = config_path()
    if not path.exists():
        return CliConfig()
    try:
        return CliConfig.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, pydantic.ValidationError) as exc:
        raise CliError(
            f"Config file {path} is unreadable: {exc}",
            ExitCode.USER_ERROR,
            hint=f"Delete {path} and run `yigyaps login` again.",
        )


def save_config(config: CliConfig) -> Path:
    """Write the config atomically (temp file + rename), readable by the owner only."""
    path = config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(config.model_dump(by_alias=True), indent=2) + "\n"

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".config.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(payload)
        os.chmod(tmp_name, 0o600)
        os.replace(tmp_name, path)
    except OSError:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return path
