from pydantic import BaseModel


class RegistryInfo(BaseModel):
    name: str
    description: str
    url: str
    version: str


class Discovery(BaseModel):
    registries: list[RegistryInfo]


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    database: str
