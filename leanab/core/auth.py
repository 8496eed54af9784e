from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from .settings import config_settings

# Tells FastAPI where clients would request a token; the API itself only
# checks bearer tokens against the configured list.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


def require_auth_token(token: Annotated[str, Depends(oauth2_scheme)]) -> str:
    """
    Dependency that requires a Bearer token from LEANAB_TOKENS.

    A missing Authorization header is rejected by OAuth2PasswordBearer
    with a 401 before this runs.
    """
    if not token or token not in config_settings.TOKENS:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return token
