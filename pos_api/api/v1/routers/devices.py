import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from pos_api.core.errors import NotFound
from pos_api.core.security import create_device_token, get_device_binding
from pos_api.db.session import get_db
from pos_api import models
from pos_api.schemas.devices import DeviceBindRequest, DeviceBindResponse, DeviceBindingOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/devices", tags=["devices"])


@router.post("/bind", response_model=DeviceBindResponse)
def bind_device(payload: DeviceBindRequest, db: Session = Depends(get_db)):
    """exchange an institution code for a device token."""
    code = db.scalar(
        select(models.InstitutionCode).where(
            models.InstitutionCode.code == payload.code.strip().upper(),
            models.InstitutionCode.is_active.is_(True),
        )
    )
    if not code or not code.institution.is_active:
        raise NotFound("Invalid institution code")

    token = create_device_token(code.institution_id, code.branch_id)
    logger.info(f"Device bound to institution {code.institution_id} (branch {code.branch_id})")
    return DeviceBindResponse(
        institution_id=code.institution_id,
        branch_id=code.branch_id,
        institution_name=code.institution.name,
        token=token,
    )


@router.get("/me", response_model=DeviceBindingOut)
def device_me(binding: dict = Depends(get_device_binding), db: Session = Depends(get_db)):
    institution = db.get(models.Institution, binding["institution_id"])
    if not institution:
        raise NotFound("Institution not found")
    return DeviceBindingOut(
        institution_id=institution.id,
        branch_id=binding["branch_id"],
        institution_name=institution.name,
    )
