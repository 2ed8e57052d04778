# JWT Utilities

from datetime import timedelta, datetime, timezone
from swebird.errors import InvalidToken
from swebird.config import Settings
import jwt  # JSON Web Token implementation
import uuid
import logging


def create_access_token(user_data: dict, settings: Settings, expiry: timedelta = None, refresh: bool = False):
    """Create a JWT access token for authentication.

    Args:
        user_data (dict): User information to encode in the token (email, user_uid, role)
        settings (Settings): Application settings holding the secret and algorithm
        expiry (timedelta, optional): Custom expiration time. Defaults to ACCESS_TOKEN_EXPIRY_DAYS
        refresh (bool, optional): Whether this is a refresh token. Defaults to False

    Returns:
        str: Encoded JWT token
    """
    if expiry is None:
        expiry = timedelta(days=settings.ACCESS_TOKEN_EXPIRY_DAYS)

    payload = {
        'user': user_data,
        'exp': datetime.now(timezone.utc) + expiry,
        'jti': str(uuid.uuid4()),  # Unique token identifier
        'refresh': refresh
    }

    token = jwt.encode(
        payload = payload,
        key = settings.JWT_SECRET,
        algorithm = settings.JWT_ALGORITHM
    )

    return token

def decode_token(token: str, settings: Settings) -> dict:
    """Decode and verify a JWT token.

    Args:
        token (str): The JWT token to decode
        settings (Settings): Application settings holding the secret and algorithm

    Returns:
        dict: Decoded token payload

    Raises:
        InvalidToken: If the token is missing, malformed or expired
    """
    if not token:
        raise InvalidToken("Token is missing")

    try:
        return jwt.decode(
            jwt = token,
            key = settings.JWT_SECRET,
            algorithms = [settings.JWT_ALGORITHM],
        )
    except jwt.ExpiredSignatureError as e:
        logging.warning(f"Token expired: {str(e)}")
        raise InvalidToken("Token has expired")
    except jwt.PyJWTError as e:
        logging.error(f"JWT error: {str(e)}")
        raise InvalidToken("Token is invalid")
