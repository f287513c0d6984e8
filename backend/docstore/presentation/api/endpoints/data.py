"""Collection CRUD endpoints — ``/data/{collection}[/{id}]``."""

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request

from docstore.application.services import DataService
from docstore.domain.entities import Action, DataRequest, Principal, QueryParams
from docstore.domain.exceptions import RequestError
from docstore.infrastructure.dependencies import get_data_service, get_principal, is_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/data", tags=["Data"])


def _record_id(tokens: str | None) -> str | None:
    """Single record id from the path remainder; more segments are rejected."""
    if not tokens:
        return None
    parts = [part for part in tokens.split("/") if part]
    if len(parts) > 1:
        raise RequestError("Too many path segments, expected /data/{collection}/{id}")
    return parts[0] if parts else None


async def _read_payload(request: Request) -> dict[str, Any]:
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        payload = json.loads(raw)
    except ValueError as exc:
        raise RequestError("Request body is not valid JSON") from exc
    if not isinstance(payload, dict):
        raise RequestError("Request body must be a JSON object")
    return payload


@router.get("")
async def list_collections(
    principal: Principal | None = Depends(get_principal),
    admin: bool = Depends(is_admin),
    service: DataService = Depends(get_data_service),
) -> list[str]:
    """Names of all public collections."""
    return service.execute(DataRequest(action=Action.READ, principal=principal, admin_override=admin))


@router.get("/{collection}")
@router.get("/{collection}/{tokens:path}")
async def read_records(
    request: Request,
    collection: str,
    tokens: str | None = None,
    principal: Principal | None = Depends(get_principal),
    admin: bool = Depends(is_admin),
    service: DataService = Depends(get_data_service),
) -> Any:
    """Read one record or a queried list (where, sortBy, offset, pageSize, distinct, count, select, load)."""
    return service.execute(DataRequest(
        action=Action.READ,
        collection=collection,
        record_id=_record_id(tokens),
        principal=principal,
        query=QueryParams.from_mapping(request.query_params),
        admin_override=admin,
    ))


@router.post("/{collection}")
@router.post("/{collection}/{tokens:path}")
async def create_record(
    request: Request,
    collection: str,
    tokens: str | None = None,
    principal: Principal | None = Depends(get_principal),
    admin: bool = Depends(is_admin),
    service: DataService = Depends(get_data_service),
) -> dict[str, Any]:
    """Create a record owned by the caller."""
    return service.execute(DataRequest(
        action=Action.CREATE,
        collection=collection,
        record_id=_record_id(tokens),
        principal=principal,
        payload=await _read_payload(request),
        admin_override=admin,
    ))


@router.put("/{collection}")
@router.put("/{collection}/{tokens:path}")
async def replace_record(
    request: Request,
    collection: str,
    tokens: str | None = None,
    principal: Principal | None = Depends(get_principal),
    admin: bool = Depends(is_admin),
    service: DataService = Depends(get_data_service),
) -> dict[str, Any]:
    """Replace a record's fields; system fields are preserved."""
    return service.execute(DataRequest(
        action=Action.UPDATE,
        collection=collection,
        record_id=_record_id(tokens),
        principal=principal,
        payload=await _read_payload(request),
        admin_override=admin,
    ))


@router.patch("/{collection}")
@router.patch("/{collection}/{tokens:path}")
async def merge_record(
    request: Request,
    collection: str,
    tokens: str | None = None,
    principal: Principal | None = Depends(get_principal),
    admin: bool = Depends(is_admin),
    service: DataService = Depends(get_data_service),
) -> dict[str, Any]:
    """Shallow-merge fields into a record."""
    return service.execute(DataRequest(
        action=Action.UPDATE,
        collection=collection,
        record_id=_record_id(tokens),
        principal=principal,
        payload=await _read_payload(request),
        admin_override=admin,
        merge=True,
    ))


@router.delete("/{collection}")
@router.delete("/{collection}/{tokens:path}")
async def delete_record(
    collection: str,
    tokens: str | None = None,
    principal: Principal | None = Depends(get_principal),
    admin: bool = Depends(is_admin),
    service: DataService = Depends(get_data_service),
) -> dict[str, int]:
    """Delete a record; returns the deletion timestamp."""
    return service.execute(DataRequest(
        action=Action.DELETE,
        collection=collection,
        record_id=_record_id(tokens),
        principal=principal,
        admin_override=admin,
    ))
