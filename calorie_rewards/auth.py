from fastapi import Header, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from calorie_rewards import constants

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(api_key: str = Security(api_key_header)):
    """Verify API key for authentication"""
    if not api_key or api_key != constants.API_KEY:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API Key"
        )
    return api_key


async def get_current_user_id(x_user_id: int = Header(..., gt=0)) -> int:
    """User id of the authenticated session, set by the gateway in front of this API"""
    return x_user_id
