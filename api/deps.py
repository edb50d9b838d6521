from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from booking_schemas import Settings
from invoicing import InvoiceClient
from persistence import crud
from persistence.db import get_db
from persistence.models import ProfileModel


def get_site_settings(db: Session = Depends(get_db)) -> Settings:
    # Read once per request and handed to every handler that needs it
    return Settings.model_validate(crud.get_settings(db))


def get_current_user(x_user_id: str = Header(None), db: Session = Depends(get_db)) -> ProfileModel:
    """The identity service authenticates upstream and forwards the user id."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    profile = crud.get_profile(db, x_user_id)
    if profile is None:
        raise HTTPException(status_code=401, detail="Unknown user")
    return profile


def require_admin(user: ProfileModel = Depends(get_current_user)) -> ProfileModel:
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


def _maintenance(settings: Settings):
    detail = {
        "message": f"{settings.site_name} is under maintenance",
        "support_email": settings.support_email,
        "support_phone": settings.support_phone,
    }
    raise HTTPException(status_code=503, detail=detail)


def open_for_public(settings: Settings = Depends(get_site_settings)) -> Settings:
    if settings.maintenance_mode:
        _maintenance(settings)
    return settings


def open_for_customer(user: ProfileModel = Depends(get_current_user),
                      settings: Settings = Depends(get_site_settings)) -> ProfileModel:
    if settings.maintenance_mode and user.role != "admin":
        _maintenance(settings)
    return user


def get_invoice_client() -> InvoiceClient:
    return InvoiceClient()
