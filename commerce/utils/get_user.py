from fastapi import HTTPException, Header, status, Request
from pydantic import BaseModel

from commerce.core.security import decode_access_token
from commerce.utils.logger import get_logger

logger = get_logger("auth.guard")


class CurrentUser(BaseModel):
    username: str
    role: str


async def get_current_user(
    request: Request,
    authorization: str = Header(...),
) -> CurrentUser:
    if not authorization.startswith("Bearer "):
        logger.warning("Missing bearer token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header",
        )

    token = authorization.split("Bearer ")[1].strip()
    payload = decode_access_token(token)

    username = payload.get("sub")
    role = payload.get("role")

    if not username or not role:
        logger.warning("Token without subject or role")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    user = CurrentUser(username=username, role=role)
    request.state.user = user
    return user
