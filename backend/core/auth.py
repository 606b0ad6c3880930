import uuid

from fastapi import HTTPException, Request, Response

from core.config import settings

COOKIE_NAME = "user_id"
COOKIE_MAX_AGE = 31536000  # 1 year

def issue_identity(response: Response) -> str:
    user_id = str(uuid.uuid4())
    # SameSite=None lets a separately hosted UI send the cookie cross-site,
    # browsers only accept it together with Secure
    response.set_cookie(
        key=COOKIE_NAME,
        value=user_id,
        httponly=True,
        max_age=COOKIE_MAX_AGE,
        samesite="none" if settings.COOKIE_SECURE else "lax",
        secure=settings.COOKIE_SECURE,
    )
    return user_id

async def get_user_id(request: Request, response: Response) -> str:
    """Resolve the caller's opaque identity, minting one for first-time visitors."""
    user_id = request.cookies.get(COOKIE_NAME)
    if not user_id:
        return issue_identity(response)
    try:
        return str(uuid.UUID(user_id))
    except ValueError:
        raise HTTPException(status_code=401, detail="Unauthorized")
