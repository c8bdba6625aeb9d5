import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import APIRouter, Depends, Header, HTTPException, Request
from passlib.context import CryptContext
from pydantic import BaseModel, EmailStr, Field

import config
from database import db, create_document, serialize, to_object_id, utcnow
from ratelimit import limiter
from schemas import DEFAULT_ADMIN_PERMISSIONS, PERMISSIONS, Role, User

logger = logging.getLogger(__name__)

# pbkdf2_sha256 avoids the native bcrypt dependency
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

ADMIN_ROLES = ("admin", "superadmin")

router = APIRouter(prefix="/api/auth", tags=["auth"])

# ----------------------
# Utility functions
# ----------------------

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=config.JWT_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.JWT_SECRET, algorithm=config.JWT_ALG)


def token_for(user: dict) -> str:
    return create_access_token({"sub": str(user["_id"]), "role": user.get("role", "user")})


def public_user(user: dict) -> dict:
    out = serialize(user)
    out.pop("password_hash", None)
    return out


def has_permission(user: dict, permission: str) -> bool:
    if user.get("role") == "superadmin":
        return True
    return permission in (user.get("permissions") or [])


def _user_from_header(authorization: Optional[str]) -> dict:
    if not authorization:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        scheme, token = authorization.split(" ", 1)
        if scheme.lower() != "bearer":
            raise ValueError("Invalid scheme")
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALG])
    except (ValueError, jwt.PyJWTError):
        raise HTTPException(status_code=401, detail="Invalid token")

    oid = to_object_id(payload.get("sub"))
    user = db["user"].find_one({"_id": oid}) if oid else None
    if not user:
        raise HTTPException(status_code=401, detail="Invalid token")
    if not user.get("is_active", True):
        raise HTTPException(status_code=401, detail="Account is deactivated")
    return user


def get_current_user(authorization: Optional[str] = Header(None)) -> dict:
    return _user_from_header(authorization)


def optional_user(authorization: Optional[str] = Header(None)) -> Optional[dict]:
    if not authorization:
        return None
    try:
        return _user_from_header(authorization)
    except HTTPException:
        return None


def require_admin(user: dict = Depends(get_current_user)) -> dict:
    if user.get("role") not in ADMIN_ROLES:
        logger.warning(f"Forbidden: user {user['_id']} with role {user.get('role')} hit an admin route")
        raise HTTPException(status_code=403, detail="Admin only")
    return user


def require_permission(permission: str):
    def checker(user: dict = Depends(get_current_user)) -> dict:
        if not has_permission(user, permission):
            logger.warning(f"Forbidden: user {user['_id']} lacks permission {permission}")
            raise HTTPException(status_code=403, detail=f"Permission '{permission}' required")
        return user
    return checker


def default_permissions(role: str) -> list:
    if role == "superadmin":
        return list(PERMISSIONS)
    if role == "admin":
        return list(DEFAULT_ADMIN_PERMISSIONS)
    return []


def guard_last_superadmin(target: dict, role: Optional[str] = None, is_active: Optional[bool] = None) -> None:
    """Refuse a change that would leave no active superadmin."""
    if target.get("role") != "superadmin" or not target.get("is_active", True):
        return
    demoted = role is not None and role != "superadmin"
    if not demoted and is_active is not False:
        return
    others = db["user"].count_documents({"role": "superadmin", "is_active": True, "_id": {"$ne": target["_id"]}})
    if others == 0:
        raise HTTPException(status_code=400, detail="Cannot demote or deactivate the last superadmin")


def new_user_doc(username: str, email: str, password: str, role: str = "user", permissions: Optional[list] = None) -> dict:
    if permissions is None:
        permissions = default_permissions(role)
    return User(
        username=username,
        email=email.lower(),
        password_hash=hash_password(password),
        role=role,
        permissions=permissions,
    ).model_dump()


def create_user(username: str, email: str, password: str, role: str = "user") -> dict:
    if db["user"].find_one({"$or": [{"email": email.lower()}, {"username": username}]}):
        raise HTTPException(status_code=400, detail="User already exists with this email or username")
    uid = create_document("user", new_user_doc(username, email, password, role))
    return db["user"].find_one({"_id": to_object_id(uid)})

# ----------------------
# Models
# ----------------------

class RegisterIn(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginIn(BaseModel):
    email: EmailStr
    password: str


class ProfileIn(BaseModel):
    username: Optional[str] = Field(None, min_length=3, max_length=50)
    email: Optional[EmailStr] = None


class PasswordIn(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6)


class UserUpdateIn(BaseModel):
    is_active: Optional[bool] = None
    role: Optional[Role] = None


def _auth_response(user: dict) -> dict:
    data = public_user(user)
    data["token"] = token_for(user)
    return {"success": True, "data": data}

# ----------------------
# Routes
# ----------------------

@router.post("/register", status_code=201)
@limiter.limit(config.AUTH_RATE_LIMIT)
def register(request: Request, payload: RegisterIn):
    user = create_user(payload.username, payload.email, payload.password)
    return _auth_response(user)


@router.post("/login")
@limiter.limit(config.AUTH_RATE_LIMIT)
def login(request: Request, payload: LoginIn):
    user = db["user"].find_one({"email": payload.email.lower()})
    if not user:
        logger.warning(f"Failed login for {payload.email} from {request.client.host if request.client else '-'}")
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user.get("is_active", True):
        raise HTTPException(status_code=401, detail="Account is deactivated")
    if not verify_password(payload.password, user.get("password_hash", "")):
        logger.warning(f"Failed login for {payload.email} from {request.client.host if request.client else '-'}")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    now = utcnow()
    db["user"].update_one({"_id": user["_id"]}, {"$set": {"last_login": now}})
    user["last_login"] = now
    return _auth_response(user)


@router.get("/me")
def me(user: dict = Depends(get_current_user)):
    return {"success": True, "data": public_user(user)}


@router.put("/profile")
def update_profile(payload: ProfileIn, user: dict = Depends(get_current_user)):
    changes = {}
    if payload.username:
        changes["username"] = payload.username
    if payload.email:
        changes["email"] = payload.email.lower()
    if changes:
        clash = db["user"].find_one({
            "_id": {"$ne": user["_id"]},
            "$or": [{k: v} for k, v in changes.items()],
        })
        if clash:
            raise HTTPException(status_code=400, detail="Email or username already in use")
        changes["updated_at"] = utcnow()
        db["user"].update_one({"_id": user["_id"]}, {"$set": changes})
    updated = db["user"].find_one({"_id": user["_id"]})
    return _auth_response(updated)


@router.put("/password")
def change_password(payload: PasswordIn, user: dict = Depends(get_current_user)):
    if not verify_password(payload.current_password, user.get("password_hash", "")):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    db["user"].update_one(
        {"_id": user["_id"]},
        {"$set": {"password_hash": hash_password(payload.new_password), "updated_at": utcnow()}},
    )
    return {"success": True, "message": "Password updated successfully"}


@router.post("/setup-admin", status_code=201)
def setup_admin(payload: RegisterIn):
    # First time setup only: refused once any admin account exists
    if db["user"].find_one({"role": {"$in": list(ADMIN_ROLES)}}):
        raise HTTPException(status_code=400, detail="Admin user already exists")
    user = create_user(payload.username, payload.email, payload.password, role="superadmin")
    logger.info(f"Initial superadmin {user['email']} created")
    return _auth_response(user)


@router.get("/users")
def list_users(_: dict = Depends(require_admin)):
    users = [public_user(u) for u in db["user"].find({})]
    return {"success": True, "count": len(users), "data": users}


@router.put("/users/{user_id}")
def update_user(user_id: str, payload: UserUpdateIn, _: dict = Depends(require_permission("manage_users"))):
    oid = to_object_id(user_id)
    target = db["user"].find_one({"_id": oid}) if oid else None
    if not target:
        raise HTTPException(status_code=404, detail="User not found")
    changes = payload.model_dump(exclude_none=True)
    guard_last_superadmin(target, changes.get("role"), changes.get("is_active"))
    if "role" in changes and not target.get("permissions"):
        changes["permissions"] = default_permissions(changes["role"])
    if changes:
        changes["updated_at"] = utcnow()
        db["user"].update_one({"_id": oid}, {"$set": changes})
    return {"success": True, "data": public_user(db["user"].find_one({"_id": oid}))}
