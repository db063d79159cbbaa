"""Users API router: register, login, and the users CRUD set.

Every route except register and login requires a bearer token.
"""

from fastapi import APIRouter, Depends, Query, Request

from src.hm_common.crud import CrudEntity, add_crud_routes, ok
from src.hm_common.query import Conditions
from src.hm_common.response import ApiResponse
from src.hm_common.schemas import MAX_KEY, IdsRequest
from src.hm_gateway.auth.dependencies import get_current_user
from src.hm_gateway.user.repository import USER_CODES, UserRepository, get_user_repository
from src.hm_gateway.user.schemas import (
    CreateUserRequest,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    UpdateUserRequest,
    UserDetail,
)
from src.hm_gateway.user.service import UserService, user_changes

router = APIRouter(prefix="/users", tags=["users"])
_service = UserService()
_auth = [Depends(get_current_user)]

USERS = CrudEntity(
    name="users",
    codes=USER_CODES,
    repository=get_user_repository,
    create_model=CreateUserRequest,
    update_model=UpdateUserRequest,
    detail_model=UserDetail,
    to_changes=user_changes,
    auth=get_current_user,
)


@router.post("/register", response_model=ApiResponse, summary="User registration")
async def register(
    request: Request,
    body: RegisterRequest,
    repo: UserRepository = Depends(get_user_repository),
) -> ApiResponse:
    user = await _service.register(body.username, body.password, repo)
    return ok(request, {"id": user.id})


@router.post("/login", response_model=ApiResponse, summary="User login")
async def login(
    request: Request,
    body: LoginRequest,
    repo: UserRepository = Depends(get_user_repository),
) -> ApiResponse:
    user, token = await _service.login(body.username, body.password, repo)
    data = LoginResponse(id=user.id, username=user.username, token=token)
    return ok(request, data.model_dump(by_alias=True))


@router.post("/delete/ids", response_model=ApiResponse, dependencies=_auth,
             summary="Delete users by batch ids")
async def delete_by_ids(
    request: Request,
    body: IdsRequest,
    repo: UserRepository = Depends(get_user_repository),
) -> ApiResponse:
    await repo.delete_by_keys(body.ids)
    return ok(request)


@router.post("/condition", response_model=ApiResponse, dependencies=_auth,
             summary="Get user detail by conditions")
async def get_by_condition(
    request: Request,
    conditions: Conditions,
    repo: UserRepository = Depends(get_user_repository),
) -> ApiResponse:
    user = await repo.get_by_condition(conditions)
    return ok(request, {"users": USERS.detail(user)})


@router.post("/list/ids", response_model=ApiResponse, dependencies=_auth,
             summary="List users by batch ids")
async def list_by_ids(
    request: Request,
    body: IdsRequest,
    repo: UserRepository = Depends(get_user_repository),
) -> ApiResponse:
    found = await repo.get_by_keys(body.ids)
    # Request order; unknown ids are left out
    users = [USERS.detail(found[i]) for i in dict.fromkeys(body.ids) if i in found]
    return ok(request, {"users": users})


@router.get("/list", response_model=ApiResponse, dependencies=_auth,
            summary="List users by last id (cursor paging)")
async def list_by_last_id(
    request: Request,
    last_id: int = Query(0, alias="lastID", ge=0, le=MAX_KEY),
    limit: int = Query(10, ge=1, le=1000),
    sort: str = Query(""),
    repo: UserRepository = Depends(get_user_repository),
) -> ApiResponse:
    users = await repo.list_by_last_id(last_id, limit, sort)
    return ok(request, {"users": [USERS.detail(u) for u in users]})


# After the fixed paths above so GET /list is not taken for GET /{id}
add_crud_routes(router, USERS)
