# Authentication and Authorization Dependencies

from fastapi import Request, Depends
from fastapi.security import HTTPBearer
from typing import List, Any, Optional

from .utils import decode_token
from swebird.errors import (
    InvalidToken,
    AccessTokenRequired,
    InsufficientPermission,
)


async def get_optional_current_user(request: Request) -> Optional[dict]:
    authorization: str | None = request.headers.get("Authorization")
    if not authorization or not authorization.startswith("Bearer "):
        return None

    token = authorization[7:]  # Strip "Bearer "

    try:
        token_data = decode_token(token, request.app.state.settings)
        return token_data["user"]
    except (InvalidToken, KeyError):
        return None


class TokenBearer(HTTPBearer):
    """Base class for JWT token validation.
    Extends FastAPI's HTTPBearer to add custom token validation logic.
    """
    def __init__(self, auto_error=True):
        super().__init__(auto_error=auto_error)

    async def __call__(self, request: Request) -> dict:
        """Validate the Bearer token from the Authorization header.

        Returns:
            dict: Decoded token data if valid

        Raises:
            InvalidToken: If the header is missing or the token is invalid
        """
        creds = await super().__call__(request)
        if creds is None:
            raise InvalidToken()

        token_data = decode_token(creds.credentials, request.app.state.settings)

        # Perform token-specific validation (implemented by child classes)
        self.verify_token_data(token_data)

        return token_data

    def verify_token_data(self, token_data):
        """Abstract method for token-specific validation logic."""
        raise NotImplementedError("Please Override this method in child classes")


class AccessTokenBearer(TokenBearer):
    def verify_token_data(self, token_data: dict) -> None:
        if token_data and token_data.get("refresh"):
            raise AccessTokenRequired()


async def get_current_user(token_details: dict = Depends(AccessTokenBearer())) -> dict:
    return token_details.get("user", {})


def check_role(user: dict, allowed_roles: List[str]) -> bool:
    if user.get("role") in allowed_roles:
        return True
    raise InsufficientPermission()


class RoleChecker:
    """Role-Based Access Control (RBAC) implementation.
    Used as a dependency to protect routes based on the token's role claim.
    """
    def __init__(self, allowed_roles: List[str]) -> None:
        self.allowed_roles = allowed_roles

    async def __call__(self, current_user: dict = Depends(get_current_user)) -> Any:
        """Raise InsufficientPermission unless the user's role is allowed."""
        return check_role(current_user, self.allowed_roles)
