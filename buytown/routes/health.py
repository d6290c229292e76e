import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, text

from buytown.config import Settings
from buytown.database import get_session
from buytown.dependencies.services import get_settings

logger = logging.getLogger(__name__)

router = APIRouter()


def configured_gateways(settings: Settings):
    gateways = []
    if settings.phonepe_merchant_id and settings.phonepe_salt_key:
        gateways.append("phonepe")
    if settings.cashfree_app_id and settings.cashfree_secret_key:
        gateways.append("cashfree")
    return gateways


@router.get("/check")
def health_check(
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    try:
        session.exec(text("SELECT 1"))
        db_status = "ok"
    except SQLAlchemyError as e:
        logger.error(f"Health check database ping failed: {e}")
        db_status = "failed"

    return {
        "statusCode": 200,
        "status": "ok" if db_status == "ok" else "degraded",
        "env": settings.env,
        "database": db_status,
        "gateways": configured_gateways(settings),
        "timestamp": datetime.utcnow().isoformat(),
    }
