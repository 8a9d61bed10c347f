import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from yigyaps.auth import Principal, get_current_principal
from yigyaps.auth.api_keys import create_api_key, list_api_keys, revoke_api_key
from yigyaps.database import get_db
from yigyaps.schemas.auth import ApiKeyCreate, ApiKeyCreated, ApiKeyOut

router = APIRouter(prefix="/auth/api-keys", tags=["auth"])


@router.post("", response_model=ApiKeyCreated, status_code=status.HTTP_201_CREATED)
async def create_key(
    body: ApiKeyCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> ApiKeyCreated:
    """Create an API key. The plaintext key is only ever returned here."""
    api_key, raw_key = await create_api_key(db, principal.id, body.name, body.scopes, body.expires_in_days)
    return ApiKeyCreated(key=raw_key, **ApiKeyOut.model_validate(api_key).model_dump())


@router.get("", response_model=list[ApiKeyOut])
async def list_keys(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> list:
    return await list_api_keys(db, principal.id)


@router.delete("/{key_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_key(
    key_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> None:
    await revoke_api_key(db, key_id, principal)
