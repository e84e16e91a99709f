"""
Upload session CRUD operations.
Upload sessions are append-only: created once, never modified.
"""
from typing import List, Optional
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session
import logging

from nest_registry.core.database import translate_db_error
from nest_registry.core.models import Package, UploadSession, _now

logger = logging.getLogger(__name__)


def upload_identity(package_name: str, version: str) -> str:
    """Identity of an upload session: name@version."""
    return f"{package_name}@{version}"


# ========== CREATE Operations ==========

def create_upload_session(db: Session, package: Package, upload: UploadSession) -> UploadSession:
    """
    Insert an upload session and append it to the package's uploads in one commit.
    Raises ConflictError if name@version was already recorded.
    """
    package.uploads.append(upload)
    package.updated_at = _now()
    db.add(upload)
    try:
        db.commit()
    except DBAPIError as e:
        db.rollback()
        raise translate_db_error(e, f"record upload {upload.name!r}") from e
    db.refresh(upload)

    logger.info(f"Recorded upload: {upload.name} (content_ref={upload.content_ref})")
    return upload


# ========== READ Operations ==========

def find_upload_session(db: Session, name: str) -> Optional[UploadSession]:
    """Get upload session by its name@version identity."""
    return db.query(UploadSession).filter(UploadSession.name == name).first()


def list_upload_sessions(db: Session, package_name: str) -> List[UploadSession]:
    """List the uploads of a package in the order they were recorded."""
    return db.query(UploadSession).filter(
        UploadSession.package_name == package_name
    ).order_by(UploadSession.id).all()
