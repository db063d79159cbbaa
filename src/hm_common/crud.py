"""Standard CRUD routes for one cached entity.

    POST   /<entity>            create        → {id}
    DELETE /<entity>/{id}       delete
    PUT    /<entity>/{id}       partial update
    GET    /<entity>/{id}       detail        → {<entity>: {...}}
    POST   /<entity>/list       filtered page → {<entity>: [...], total}

Routers with extra fixed paths (e.g. GET /users/list) must register them
before calling ``add_crud_routes`` so they win over ``/{id}``.
"""

import dataclasses
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError

from src.hm_common.errors import EntityErrorCodes, InvalidParamsError
from src.hm_common.query import Params
from src.hm_common.repository import CachedRepository
from src.hm_common.response import ApiResponse, success_response
from src.hm_common.schemas import MAX_KEY, to_json_name

logger = logging.getLogger(__name__)


def get_request_id(request: Request) -> str:
    """Read request_id injected by RequestLogMiddleware, fallback if absent."""
    return getattr(request.state, "request_id", "req_unknown")


def ok(request: Request, data: Any = None) -> ApiResponse:
    resp = success_response(data)
    resp.request_id = get_request_id(request)
    return resp


def parse_key(raw: str) -> int:
    """Path key → positive int, else InvalidParamsError."""
    # isdigit alone accepts non-ASCII digits such as "²"
    if not (raw.isascii() and raw.isdigit()) or not 0 < int(raw) <= MAX_KEY:
        raise InvalidParamsError(f"id must be a positive integer, got {raw!r}")
    return int(raw)


def _dump(body: BaseModel) -> dict[str, Any]:
    return body.model_dump()


@dataclass(frozen=True)
class CrudEntity:
    """How one entity is exposed over HTTP."""

    name: str
    codes: EntityErrorCodes
    repository: Callable[..., CachedRepository[Any, Any]]
    create_model: type[BaseModel]
    update_model: type[BaseModel]
    detail_model: type[BaseModel]
    key_field: str = "id"
    # Body → repository changes (e.g. hash a password)
    to_changes: Callable[[BaseModel], dict[str, Any]] = _dump
    auth: Callable[..., Any] | None = None
    # False: only mutating routes require auth
    protect_reads: bool = True

    def detail(self, record: Any) -> dict[str, Any]:
        return self.detail_model.model_validate(dataclasses.asdict(record)).model_dump(
            by_alias=True
        )


def add_crud_routes(router: APIRouter, entity: CrudEntity) -> APIRouter:
    write_deps = [Depends(entity.auth)] if entity.auth else []
    read_deps = write_deps if entity.protect_reads else []
    key_name = to_json_name(entity.key_field)
    CreateModel = entity.create_model
    UpdateModel = entity.update_model

    @router.post("", response_model=ApiResponse, dependencies=write_deps,
                 summary=f"Create {entity.name}")
    async def create(
        request: Request,
        body: CreateModel,  # type: ignore[valid-type]
        repo: CachedRepository[Any, Any] = Depends(entity.repository),
    ) -> ApiResponse:
        try:
            record = await repo.create(entity.to_changes(body))
        except IntegrityError as exc:
            logger.warning("create %s rejected [%s]: %s",
                           entity.name, get_request_id(request), exc.orig)
            raise entity.codes.create() from exc
        return ok(request, {key_name: getattr(record, entity.key_field)})

    @router.delete("/{id}", response_model=ApiResponse, dependencies=write_deps,
                   summary=f"Delete {entity.name} by id")
    async def delete_by_id(
        request: Request,
        id: str,
        repo: CachedRepository[Any, Any] = Depends(entity.repository),
    ) -> ApiResponse:
        await repo.delete_by_key(parse_key(id))
        return ok(request)

    @router.put("/{id}", response_model=ApiResponse, dependencies=write_deps,
                summary=f"Update {entity.name} by id (partial)")
    async def update_by_id(
        request: Request,
        id: str,
        body: UpdateModel,  # type: ignore[valid-type]
        repo: CachedRepository[Any, Any] = Depends(entity.repository),
    ) -> ApiResponse:
        key = parse_key(id)
        try:
            await repo.update_by_key(key, entity.to_changes(body))
        except IntegrityError as exc:
            logger.warning("update %s %s rejected [%s]: %s",
                           entity.name, key, get_request_id(request), exc.orig)
            raise entity.codes.update() from exc
        return ok(request)

    @router.get("/{id}", response_model=ApiResponse, dependencies=read_deps,
                summary=f"Get {entity.name} detail by id")
    async def get_by_id(
        request: Request,
        id: str,
        repo: CachedRepository[Any, Any] = Depends(entity.repository),
    ) -> ApiResponse:
        record = await repo.get_by_key(parse_key(id))
        return ok(request, {entity.name: entity.detail(record)})

    @router.post("/list", response_model=ApiResponse, dependencies=read_deps,
                 summary=f"List {entity.name} by query parameters")
    async def list_by_params(
        request: Request,
        params: Params,
        repo: CachedRepository[Any, Any] = Depends(entity.repository),
    ) -> ApiResponse:
        records, total = await repo.list_by_params(params)
        return ok(request, {
            entity.name: [entity.detail(r) for r in records],
            "total": total,
        })

    return router
