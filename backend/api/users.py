"""
Users API Endpoints

Organization user administration for admins, plus the caller's own profile.
"""

from fastapi import APIRouter, Depends

from dependencies import get_current_principal, get_current_user, get_user_service
from domain.value_objects import Principal
from models import User
from schemas import RoleUpdateRequest, UserDetailResponse, UserListResponse, UserResponse
from services.user_service import UserService
from utils import handle_api_errors

router = APIRouter()


@router.get("/users/me", response_model=UserDetailResponse)
def get_me(user: User = Depends(get_current_user)):
    return {"user": UserResponse.model_validate(user)}


@router.get("/users", response_model=UserListResponse)
@handle_api_errors("List users")
def list_users(
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    users = service.list_users(principal)
    return {"users": [UserResponse.model_validate(u) for u in users]}


@router.patch("/users/{user_id}/role", response_model=UserDetailResponse)
@handle_api_errors("Update user role")
def update_user_role(
    user_id: str,
    request: RoleUpdateRequest,
    principal: Principal = Depends(get_current_principal),
    service: UserService = Depends(get_user_service),
):
    user = service.change_role(principal, user_id, request.role)
    return {"user": UserResponse.model_validate(user)}
