"""Auth API: anonymous sign-in, register, login and profile endpoints."""
from __future__ import annotations
import sqlite3
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel, Field
from jose import JWTError, jwt

from formbuilder.core.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from formbuilder.persistence.db import get_connection

router = APIRouter(prefix="/auth", tags=["auth"])

_bearer = HTTPBearer(auto_error=False)


# ------------------------------------------------------------------
# Password hashing (direct bcrypt)
# ------------------------------------------------------------------
def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False


# ------------------------------------------------------------------
# Pydantic schemas
# ------------------------------------------------------------------
class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    display_name: Optional[str] = None
    email: Optional[str] = None


class LoginRequest(BaseModel):
    username: str
    password: str


class ProfileUpdateRequest(BaseModel):
    display_name: Optional[str] = None
    email: Optional[str] = None


# ------------------------------------------------------------------
# JWT helpers
# ------------------------------------------------------------------
def _create_token(user: dict) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": user["id"],
        "username": user.get("username"),
        "role": user["role"],
        "anonymous": bool(user.get("is_anonymous")),
        "exp": expire,
    }
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def _decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}")


# ------------------------------------------------------------------
# Dependency: the caller's identity. Until one exists nothing owner-scoped runs.
# ------------------------------------------------------------------
def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer)) -> dict:
    if not credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Sign-in is still pending.")
    return _decode_token(credentials.credentials)


# ------------------------------------------------------------------
# DB helpers
# ------------------------------------------------------------------
def _insert_user(user: dict) -> None:
    conn = get_connection()
    try:
        conn.execute(
            """
            INSERT INTO users (id, username, password_hash, role, display_name, email, is_anonymous, created_at)
            VALUES (:id, :username, :password_hash, :role, :display_name, :email, :is_anonymous, :created_at)
            """,
            user,
        )
        conn.commit()
    finally:
        conn.close()


def _get_user(column: str, value: str) -> Optional[dict]:
    conn = get_connection()
    row = conn.execute(f"SELECT * FROM users WHERE {column} = ?", (value,)).fetchone()
    conn.close()
    return dict(row) if row else None


def _public_user(user: dict) -> dict:
    return {
        "id": user["id"],
        "username": user.get("username"),
        "role": user["role"],
        "display_name": user.get("display_name"),
        "email": user.get("email"),
        "anonymous": bool(user.get("is_anonymous")),
    }


def _new_user(username: Optional[str], password_hash: Optional[str], anonymous: bool, **profile) -> dict:
    return {
        "id": str(uuid.uuid4()),
        "username": username,
        "password_hash": password_hash,
        "role": "owner",
        "display_name": profile.get("display_name"),
        "email": profile.get("email"),
        "is_anonymous": 1 if anonymous else 0,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------
@router.post("/anonymous", status_code=status.HTTP_201_CREATED)
def sign_in_anonymously():
    user = _new_user(None, None, anonymous=True)
    _insert_user(user)
    return {"token": _create_token(user), "user": _public_user(user)}


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(body: RegisterRequest):
    user = _new_user(
        body.username,
        hash_password(body.password),
        anonymous=False,
        display_name=body.display_name,
        email=body.email,
    )
    try:
        _insert_user(user)
    except sqlite3.IntegrityError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username already taken")
    return {"token": _create_token(user), "user": _public_user(user)}


@router.post("/login")
def login(body: LoginRequest):
    user = _get_user("username", body.username)
    if not user or not verify_password(body.password, user["password_hash"]):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return {"token": _create_token(user), "user": _public_user(user)}


@router.get("/profile")
def get_profile(current_user: dict = Depends(get_current_user)):
    user = _get_user("id", current_user["sub"])
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return _public_user(user)


@router.put("/profile")
def update_profile(body: ProfileUpdateRequest, current_user: dict = Depends(get_current_user)):
    conn = get_connection()
    conn.execute(
        "UPDATE users SET display_name = ?, email = ? WHERE id = ?",
        (body.display_name, body.email, current_user["sub"]),
    )
    conn.commit()
    conn.close()
    return {"detail": "Profile updated"}
