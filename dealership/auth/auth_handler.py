import logging
import time
from typing import Dict, Optional

import jwt

from dealership.core.environment import get_jwt_secret, get_jwt_algorithm, get_token_lifetime_seconds
from dealership.services.exceptions import DealershipError

logger = logging.getLogger(__name__)


class TokenConfigurationError(DealershipError):
    """Raised when tokens are requested but no signing secret is configured."""
    status_code = 500


def token_response(token: str):
    return {
        "access_token": token,
        "token_type": "bearer",
    }


def sign_jwt(user_id: int, role: str) -> Dict[str, str]:
    """Generate a JWT token for an admin or branch manager."""
    secret = get_jwt_secret()
    if not secret:
        logger.error("JWT_SECRET is not configured; refusing to issue tokens")
        raise TokenConfigurationError("Server configuration error")
    payload = {
        "user_id": user_id,
        "role": role,
        "expires": time.time() + get_token_lifetime_seconds(),
    }
    token = jwt.encode(payload, secret, algorithm=get_jwt_algorithm())
    return token_response(token)


def decode_jwt(token: str) -> Optional[dict]:
    """Decode a JWT token and return the payload if valid, else None."""
    secret = get_jwt_secret()
    if not secret:
        return None
    try:
        decoded_token = jwt.decode(token, secret, algorithms=[get_jwt_algorithm()])
    except jwt.InvalidTokenError:
        return None
    if decoded_token.get("expires", 0) >= time.time():
        return decoded_token
    return None
