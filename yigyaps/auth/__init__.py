from yigyaps.auth.dependencies import get_current_principal, get_optional_principal, require_role, require_tier
from yigyaps.auth.jwt import create_access_token, decode_access_token
from yigyaps.auth.principal import Principal

__all__ = [
    "Principal",
    "get_current_principal",
    "get_optional_principal",
    "require_role",
    "require_tier",
    "create_access_token",
    "decode_access_token",
]
