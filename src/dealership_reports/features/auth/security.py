import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import ValidationError
import bcrypt

from ...core.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from . import schemas, service as auth_service
from . import models

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))

def get_password_hash(password: str) -> str:
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt())
    return hashed.decode('utf-8')

def create_access_token(user: models.User, expires_delta: Optional[timedelta] = None) -> str:
    """Signs a token naming the user and the company their reports are scoped to."""
    to_encode = {"sub": user.username, "company": user.company_id}
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

async def get_current_user(token: Annotated[str, Depends(oauth2_scheme)]) -> models.User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        token_data = schemas.TokenData(**payload)
        if token_data.sub is None:
            logger.warning("Token sub (username) is missing.")
            raise credentials_exception
    except JWTError as e:
        logger.error(f"JWT decoding error: {e}")
        raise credentials_exception
    except ValidationError as e:
        logger.error(f"Token data validation error: {e}")
        raise credentials_exception

    user = await auth_service.get_user_by_username(username=token_data.sub)
    if user is None:
        logger.warning(f"User not found for username: {token_data.sub}")
        raise credentials_exception
    if token_data.company_id != user.company_id:
        logger.warning(f"Token for {user.username} was issued for company {token_data.company_id}, not {user.company_id}")
        raise credentials_exception
    return user

async def get_current_active_user(current_user: Annotated[models.User, Depends(get_current_user)]) -> models.User:
    """The caller identity every report is scoped by.

    Disabled accounts and accounts locked after too many failed logins are
    refused before any report runs.
    """
    if not current_user.is_active:
        logger.warning(f"User {current_user.username} is inactive.")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")
    if auth_service.is_locked(current_user):
        logger.warning(f"User {current_user.username} is locked until {current_user.account_locked_until}.")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account locked")
    return current_user
