import uuid
from datetime import datetime
from typing import Any

from pydantic import Field

from yigyaps.schemas.common import CamelModel
from yigyaps.types import InstallationStatus


class InstallRequest(CamelModel):
    package_id: uuid.UUID
    agent_id: str = Field(min_length=1, max_length=255)
    configuration: dict[str, Any] | None = None


class UpdateInstallationRequest(CamelModel):
    status: InstallationStatus


class InstallationOut(CamelModel):
    id: uuid.UUID
    package_id: uuid.UUID
    agent_id: str
    user_id: uuid.UUID
    installer_tier: str
    status: str
    configuration: dict[str, Any] | None
    installed_at: datetime
    updated_at: datetime
