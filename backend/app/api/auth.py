from fastapi import APIRouter, Depends, Response

from app.auth import COOKIE_NAME, get_current_user, set_session_cookie, verify_password
from app.errors import AuthenticationError
from app.schemas import LoginRequest, success_response

router = APIRouter()


@router.post("/login")
async def login(request: LoginRequest, response: Response):
    if not verify_password(request.password):
        raise AuthenticationError("Invalid password")
    set_session_cookie(response)
    return success_response(message="Logged in")


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(COOKIE_NAME)
    return success_response(message="Logged out")


@router.get("/check")
async def check_auth(_: bool = Depends(get_current_user)):
    return success_response({"authenticated": True}, message="Authenticated")
