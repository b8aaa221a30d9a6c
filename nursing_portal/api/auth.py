"""JWT-based stateless authentication."""
from datetime import datetime

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from nursing_portal.api.deps import (
    CurrentUser,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_password_hash,
    load_active_user,
    verify_password,
)
from nursing_portal.models.user import User, UserCreate, UserProfileUpdate, UserRole

router = APIRouter()


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    email: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


def _tokens(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(str(user.id), user.role.value),
        refresh_token=create_refresh_token(str(user.id)),
    )


def _profile(user: User) -> dict:
    return {
        "id": str(user.id),
        "email": user.email,
        "role": user.role.value,
        "full_name": user.full_name,
        "institution": user.institution,
        "department": user.department,
        "profile_image": user.profile_image,
        "last_login": user.last_login,
    }


@router.post("/login", response_model=TokenResponse)
async def login(req: LoginRequest):
    user = await User.find_one(User.email == req.email.strip().lower())
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not verify_password(req.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    user.last_login = datetime.utcnow()
    await user.save()
    return _tokens(user)


@router.post("/register", response_model=TokenResponse)
async def register(data: UserCreate):
    if data.role != UserRole.INSTRUCTOR:
        raise HTTPException(status_code=403, detail="Only instructor accounts can self-register")
    if data.password != data.confirm_password:
        raise HTTPException(status_code=400, detail="Passwords do not match")
    if len(data.password) < 6:
        raise HTTPException(status_code=400, detail="Password must be at least 6 characters")
    email = str(data.email).lower()
    existing = await User.find_one(User.email == email)
    if existing:
        raise HTTPException(status_code=400, detail="Email already registered")
    user = User(
        email=email,
        hashed_password=get_password_hash(data.password),
        role=data.role,
        full_name=data.full_name.strip(),
        institution=data.institution,
        department=data.department,
    )
    await user.insert()
    return _tokens(user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(req: RefreshRequest):
    user_id = decode_token(req.refresh_token, "refresh")
    user = await load_active_user(user_id)
    return _tokens(user)


@router.get("/me")
async def me(user: CurrentUser):
    return _profile(user)


@router.patch("/me")
async def update_me(data: UserProfileUpdate, user: CurrentUser):
    update_data = data.model_dump(exclude_unset=True)
    for key, value in update_data.items():
        setattr(user, key, value)
    user.updated_at = datetime.utcnow()
    await user.save()
    return _profile(user)
