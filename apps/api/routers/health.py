"""
Database round-trip check: write a row, read the latest few back.
"""
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.database import get_db
from models import HealthCheck

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/db")
def health_db(db: Session = Depends(get_db)):
    try:
        db.add(HealthCheck(source="api"))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"ok": False, "step": "insert", "error": str(e)},
        )

    try:
        rows = db.query(HealthCheck).order_by(HealthCheck.id.desc()).limit(5).all()
    except SQLAlchemyError as e:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"ok": False, "step": "select", "error": str(e)},
        )

    return {
        "ok": True,
        "message": "API + database OK",
        "last_rows": [
            {
                "id": r.id,
                "created_at": r.created_at.isoformat() if r.created_at else None,
                "source": r.source,
            }
            for r in rows
        ],
    }
