import hmac
import hashlib
import time
from typing import Optional
from fastapi import Header, HTTPException, Request
from core.config import settings
from core.logger import logger

def _sign(data: str) -> str:
    return hmac.new(settings.SECRET_KEY.encode(), data.encode(), hashlib.sha256).hexdigest()

def create_token(user_id: int, timestamp: Optional[int] = None) -> str:
    """
    Issue a signed token for a user.
    Format: {user_id}:{timestamp}:{signature}
    """
    timestamp = int(time.time()) if timestamp is None else timestamp
    data = f"{user_id}:{timestamp}"
    return f"{data}:{_sign(data)}"

def verify_token(token: str) -> Optional[int]:
    """Return the user id carried by a valid, unexpired token, else None."""
    if not token:
        return None

    parts = token.split(':')
    if len(parts) != 3:
        return None

    user_id_str, timestamp_str, signature = parts
    try:
        user_id = int(user_id_str)
        timestamp = int(timestamp_str)
    except ValueError:
        return None

    # Check expiration
    if int(time.time()) - timestamp > settings.TOKEN_TTL_SECONDS:
        logger.warning("Token expired", user_id=user_id)
        return None

    expected_signature = _sign(f"{user_id_str}:{timestamp_str}")
    if hmac.compare_digest(expected_signature, signature):
        return user_id

    logger.warning("Token signature mismatch", user_id=user_id_str)
    return None

def get_current_user(request: Request, x_auth_token: str = Header(None)) -> int:
    user_id = verify_token(x_auth_token)
    if user_id is not None:
        return user_id

    logger.warning("Auth failed: Missing or invalid credentials", path=request.url.path)
    raise HTTPException(status_code=401, detail="Unauthorized")
