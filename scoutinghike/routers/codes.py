from __future__ import annotations

import uuid
from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import InvalidCode
from ..core.notify import notify
from ..core.qr import code_qr_png
from ..deps import get_db, get_organiser
from ..schemas import CodeCreate, CodeRead
from ..services import codes as issuer
from ..services.events import get_owned_event

router = APIRouter(prefix="/events/{event_id}/codes", tags=["codes"])

@router.post("", response_model=CodeRead, status_code=201)
async def generate_code(
    event_id: uuid.UUID,
    payload: CodeCreate,
    claims: dict = Depends(get_organiser),
    db: AsyncSession = Depends(get_db),
):
    await get_owned_event(db, event_id=event_id, organiser_id=claims["sub_uuid"])
    code = await issuer.generate_code(db, event_id=event_id, volunteer_name=payload.volunteer_name)
    await notify("Toegangscode gegenereerd", f"Nieuwe code voor {code.volunteer_name}: {code.access_code}")
    return CodeRead.model_validate(code)

@router.get("", response_model=list[CodeRead])
async def list_codes(event_id: uuid.UUID, claims: dict = Depends(get_organiser), db: AsyncSession = Depends(get_db)):
    await get_owned_event(db, event_id=event_id, organiser_id=claims["sub_uuid"])
    return [CodeRead.model_validate(c) for c in await issuer.list_codes(db, event_id=event_id)]

@router.delete("/{code}", status_code=204)
async def revoke_code(
    event_id: uuid.UUID,
    code: str,
    claims: dict = Depends(get_organiser),
    db: AsyncSession = Depends(get_db),
):
    await get_owned_event(db, event_id=event_id, organiser_id=claims["sub_uuid"])
    await issuer.revoke_code(db, event_id=event_id, code=code)
    await notify("Code verwijderd", "De toegangscode is succesvol verwijderd.")

@router.get("/{code}/qr.png")
async def code_qr(
    event_id: uuid.UUID,
    code: str,
    claims: dict = Depends(get_organiser),
    db: AsyncSession = Depends(get_db),
):
    await get_owned_event(db, event_id=event_id, organiser_id=claims["sub_uuid"])
    obj = await issuer.get_code(db, event_id=event_id, code=code)
    if obj is None:
        raise InvalidCode()
    return Response(content=code_qr_png(obj.access_code), media_type="image/png")
