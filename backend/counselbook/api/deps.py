from dataclasses import dataclass
import secrets
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from ..config import get_settings
from ..core.errors import BookingError
from ..core.security import decode_access_token
from ..db.models import ProfileRole


bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(slots=True, frozen=True)
class Actor:
    id: str
    role: ProfileRole


def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> Actor:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception
    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError as exc:
        raise credentials_exception from exc
    subject = payload.get("sub")
    role = payload.get("role")
    if not subject or role not in ProfileRole.__members__:
        raise credentials_exception
    return Actor(id=str(subject), role=ProfileRole(role))


def require_roles(*roles: str):
    def dependency(actor: Annotated[Actor, Depends(get_current_actor)]) -> Actor:
        if actor.role.value not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return actor

    return dependency


def verify_service_token(
    x_service_token: Annotated[str | None, Header()] = None,
) -> None:
    expected = get_settings().service_api_token
    if not expected or not x_service_token or not secrets.compare_digest(
        x_service_token, expected
    ):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid service token")


def http_error(exc: BookingError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=str(exc))
