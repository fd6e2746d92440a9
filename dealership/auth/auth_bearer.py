from fastapi import HTTPException, Request
from fastapi.security import HTTPBearer

from dealership.auth.auth_handler import decode_jwt


class BearerToken(HTTPBearer):
    """Extracts the raw bearer token; 401 when it is absent."""

    def __init__(self, auto_error: bool = True):
        super().__init__(auto_error=False)
        self.require_token = auto_error

    async def __call__(self, request: Request):
        credentials = await super().__call__(request)
        if credentials and credentials.scheme.lower() == "bearer" and credentials.credentials:
            return credentials.credentials
        if self.require_token:
            raise HTTPException(status_code=401, detail="Not authorized, no token provided")
        return None


class JWTBearer(BearerToken):
    """Bearer dependency for internally signed admin tokens; returns the payload."""

    async def __call__(self, request: Request):
        token = await super().__call__(request)
        if token is None:
            return None
        payload = decode_jwt(token)
        if not payload:
            if self.require_token:
                raise HTTPException(status_code=401, detail="Not authorized, invalid or expired token")
            return None
        return payload
