from enum import IntEnum

from yigyaps.client import RegistryApiError


class ExitCode(IntEnum):
    SUCCESS = 0
    USER_ERROR = 1
    SYSTEM_ERROR = 2
    NETWORK_ERROR = 3


LOGIN_HINT = "Run `yigyaps login` to sign in."


class CliError(Exception):
    """A failure the CLI reports as a message, an optional hint and an exit code."""

    def __init__(self, message: str, exit_code: int = ExitCode.USER_ERROR, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.exit_code = int(exit_code)
        self.hint = hint


def from_api_error(exc: RegistryApiError) -> CliError:
    if exc.is_network:
        return CliError(
            exc.message,
            ExitCode.NETWORK_ERROR,
            hint="Check your connection, or point YIGYAPS_REGISTRY_URL at a reachable registry.",
        )
    if exc.status == 401:
        return CliError(exc.message, ExitCode.USER_ERROR, hint=LOGIN_HINT)
    if exc.status == 403 and isinstance(exc.details, dict) and exc.details.get("requiredTierName"):
        return CliError(
            exc.message,
            ExitCode.USER_ERROR,
            hint=f"This package needs the {exc.details['requiredTierName']} tier; "
            f"your account is on {exc.details.get('currentTier', 'free')}.",
        )
    if exc.status == 429:
        return CliError(exc.message, ExitCode.USER_ERROR, hint="Wait a moment and try again.")
    return CliError(exc.message, ExitCode.USER_ERROR)
