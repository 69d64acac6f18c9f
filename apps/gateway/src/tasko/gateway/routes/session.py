"""会话路由

POST /api/session: 登录并加载工作区
- 200: 返回当前用户
- 401: 身份提供方拒绝
DELETE /api/session: 登出
GET /api/session: 当前用户
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from starlette.responses import JSONResponse, Response
from tasko.sync import IdentityError

from ..deps import get_context
from ..responses import error_response, not_signed_in
from ..services.session_service import SessionService

router = APIRouter()


class SignInRequest(BaseModel):
    """登录请求"""

    email: str
    password: str


@router.post("/api/session")
async def sign_in(body: SignInRequest, context=Depends(get_context)):
    service = SessionService(context)
    try:
        user = await service.sign_in(body.email, body.password)
    except IdentityError as e:
        return error_response(401, "INVALID_CREDENTIALS", str(e))
    return JSONResponse(status_code=200, content=user.model_dump(mode="json"))


@router.get("/api/session")
async def current_session(context=Depends(get_context)):
    user = context.store.current_user
    if user is None:
        return not_signed_in()
    return JSONResponse(status_code=200, content=user.model_dump(mode="json"))


@router.delete("/api/session")
async def sign_out(context=Depends(get_context)):
    await SessionService(context).sign_out()
    return Response(status_code=204)
