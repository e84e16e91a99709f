"""
Upload session recorder.
Records a completed content upload against an existing package. Content
placement is delegated to the content-addressing service.
"""
import logging
from typing import Optional

from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from nest_registry import crud
from nest_registry.core.config import settings
from nest_registry.core.database import translate_db_error
from nest_registry.core.errors import (
    RECORDED,
    SKIPPED,
    InvalidError,
    NotFoundError,
    PublishResult,
    RegistryError,
)
from nest_registry.core.models import UploadSession, _now
from nest_registry.core.naming import validate_name
from nest_registry.services.content_service import ContentServiceClient
from nest_registry.services.publication import publish_package

logger = logging.getLogger(__name__)

# Width of package_uploads.version
MAX_VERSION_LENGTH = 64


def validate_version(version: str) -> str:
    """Strip a version string, raising InvalidError when it cannot be stored."""
    version = version.strip()
    if not version:
        raise InvalidError("version must not be empty", field="version")
    if len(version) > MAX_VERSION_LENGTH:
        raise InvalidError(f"version is longer than {MAX_VERSION_LENGTH} characters", field="version")
    return version


def record_upload(
    db: Session,
    name: str,
    version: str,
    content_ref: str,
    entry: str = "",
    prefix: str = "",
    manifest: str = "",
    upload: bool = True
) -> PublishResult:
    """
    Record an upload session for an existing package.

    With upload=False nothing is recorded and the call succeeds. Otherwise
    the session row and the package's upload list change in one commit;
    recording the same name@version twice is a conflict, never an overwrite.
    """
    if not upload:
        return PublishResult.success(SKIPPED)

    name = name.strip()
    try:
        key = validate_name(name)
        version = validate_version(version)
        if not content_ref:
            raise InvalidError("content reference must not be empty", field="content_ref")

        package = crud.find_package_by_canonical_name(db, key)
        if package is None:
            raise NotFoundError("Package", name)

        session = UploadSession(
            name=crud.upload_identity(package.name, version),
            package_name=package.name,
            entry=entry,
            version=version,
            prefix=prefix,
            manifest=manifest,
            content_ref=content_ref,
            created_at=_now()
        )
        crud.create_upload_session(db, package, session)
        return PublishResult.success(RECORDED)

    except RegistryError as e:
        db.rollback()
        logger.warning(f"Upload {name}@{version} rejected: {e.kind}: {e.message}")
        return PublishResult.failure(e)
    except DBAPIError as e:
        db.rollback()
        return PublishResult.failure(translate_db_error(e, f"record upload {name}@{version}"))


def publish_upload(
    db: Session,
    content_client: ContentServiceClient,
    credential: str,
    name: str,
    version: str,
    tmp_id: str = "",
    entry: str = "",
    description: str = "",
    repository: str = "",
    manifest: str = "",
    prefix: Optional[str] = None,
    unlisted: bool = False,
    upload: bool = True
) -> PublishResult:
    """
    Publish package metadata and record its uploaded content.

    The publish goes through the coordinator first, so only the package
    owner (or the creator of a new package) gets content recorded. The
    temporary handle is resolved before the recording transaction opens.
    A request that fails validation is rejected before anything is written.
    """
    if upload:
        try:
            if not tmp_id:
                raise InvalidError("tmp_id is required for uploads", field="tmp_id")
            version = validate_version(version)
        except InvalidError as e:
            logger.warning(f"Upload {name}@{version} rejected: {e.kind}: {e.message}")
            return PublishResult.failure(e)

    result = publish_package(
        db,
        credential=credential,
        name=name,
        description=description,
        repository=repository,
        unlisted=unlisted
    )
    if not result.ok or not upload:
        return result

    # No transaction may stay open across the content-service call
    db.rollback()

    try:
        reference = content_client.resolve(tmp_id)
    except RegistryError as e:
        return PublishResult.failure(e)

    return record_upload(
        db,
        name=name,
        version=version,
        content_ref=reference.content_ref,
        entry=entry,
        prefix=prefix or settings.default_prefix,
        manifest=manifest,
        upload=True
    )
