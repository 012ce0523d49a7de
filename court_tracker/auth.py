# auth.py

import os
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, EmailStr
from dotenv import load_dotenv
from court_tracker.database import database
from court_tracker.models import users
from court_tracker.storage import user_store

load_dotenv()
SECRET_KEY = os.getenv('SECRET_KEY')
ALGORITHM = os.getenv('ALGORITHM', 'HS256')
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv('ACCESS_TOKEN_EXPIRE_MINUTES', 30))
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")


# Pydantic Models
class User(BaseModel):
    id: str
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: str = "player"

class Token(BaseModel):
    access_token: str
    token_type: str

class UserCreate(BaseModel):
    username: str
    full_name: str
    email: EmailStr
    password: str


async def get_user_by_username(username: str) -> Optional[dict]:
    query = users.select().where(users.c.username == username)
    record = await database.fetch_one(query)
    return dict(record._mapping) if record else None

async def get_user_by_email(email: str) -> Optional[dict]:
    query = users.select().where(users.c.email == email)
    record = await database.fetch_one(query)
    return dict(record._mapping) if record else None

def require_secret_key() -> None:
    """Refuse to issue or verify tokens without a configured signing key."""
    if not SECRET_KEY:
        raise RuntimeError("SECRET_KEY is not set; add a long random value to the environment or .env")

def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=15))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

async def create_user(user: UserCreate, role: str = "player") -> dict:
    return await user_store.upsert(uuid.uuid4().hex, {
        "username": user.username,
        "full_name": user.full_name,
        "email": user.email,
        "hashed_password": pwd_context.hash(user.password),
        "role": role,
    })

async def authenticate_user(username: str, password: str) -> Optional[dict]:
    record = await get_user_by_username(username)
    if not record or not verify_password(password, record["hashed_password"]):
        return None
    return record


async def _decode_token_and_get_user(token: str) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id: str = payload.get("sub")
        if user_id is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    record = await user_store.get(user_id)
    if record is None:
        raise credentials_exception

    return User(**record)


# The court tracker trusts whatever identity this returns
async def get_current_active_user(token: str = Depends(oauth2_scheme)) -> User:
    return await _decode_token_and_get_user(token)
