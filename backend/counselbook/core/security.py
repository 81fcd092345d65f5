from typing import Any, Dict

from jose import jwt

from ..config import get_settings

# Tokens are issued by the identity provider; this service only verifies them.
ALGORITHM = "HS256"


def decode_access_token(token: str) -> Dict[str, Any]:
    settings = get_settings()
    return jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM])
