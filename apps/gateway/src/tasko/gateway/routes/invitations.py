"""邀请路由

POST   /api/invitations                  创建邀请
GET    /api/invitations                  邀请列表（含实际状态）
GET    /api/invitations/{token}          按 token 解析邀请
POST   /api/invitations/{token}/accept   接受邀请
DELETE /api/invitations/{invitation_id}  删除邀请

接受邀请：
- 200: 返回新建用户
- 404: token 不存在
- 409: 邀请已被接受
- 410: 邀请已过期
"""

from fastapi import APIRouter, Depends
from starlette.responses import JSONResponse, Response
from tasko.core.models import Invitation, InvitationDraft, InvitationStatus

from ..deps import get_store
from ..responses import error_response

router = APIRouter()


def _invitation_view(invitation: Invitation, now) -> dict:
    data = invitation.model_dump(mode="json")
    data["status"] = invitation.effective_status(now).value
    data["expired"] = invitation.is_expired(now)
    return data


def _invitation_not_found() -> JSONResponse:
    return error_response(404, "INVITATION_NOT_FOUND", "Invitation does not exist")


@router.post("/api/invitations")
async def create_invitation(draft: InvitationDraft, store=Depends(get_store)):
    invitation = store.create_invitation(draft)
    return JSONResponse(status_code=201, content=_invitation_view(invitation, store.now()))


@router.get("/api/invitations")
async def list_invitations(store=Depends(get_store)):
    now = store.now()
    return {"invitations": [_invitation_view(i, now) for i in store.invitations]}


@router.get("/api/invitations/{token}")
async def resolve_invitation(token: str, store=Depends(get_store)):
    invitation = store.find_invitation(token)
    if invitation is None:
        return _invitation_not_found()
    return _invitation_view(invitation, store.now())


@router.post("/api/invitations/{token}/accept")
async def accept_invitation(token: str, store=Depends(get_store)):
    invitation = store.find_invitation(token)
    if invitation is None:
        return _invitation_not_found()

    status = invitation.effective_status(store.now())
    if status == InvitationStatus.EXPIRED:
        return error_response(410, "INVITATION_EXPIRED", "Invitation has expired")
    if status != InvitationStatus.PENDING:
        return error_response(409, "INVITATION_NOT_PENDING", f"Invitation is {status.value}")

    user = store.accept_invitation(token)
    if user is None:
        return error_response(409, "INVITATION_NOT_ACCEPTABLE", "Invitation cannot be accepted")
    return user.model_dump(mode="json")


@router.delete("/api/invitations/{invitation_id}")
async def delete_invitation(invitation_id: str, store=Depends(get_store)):
    if not store.delete_invitation(invitation_id):
        return _invitation_not_found()
    return Response(status_code=204)
