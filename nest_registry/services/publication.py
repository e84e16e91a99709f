"""
Publication coordinator.

Decides, for a (credential, package name) pair, whether a publish creates a
package, updates it, or is rejected. Ownership and existence are re-read from
committed state on every call; the create path relies on the store's unique
canonical name to settle concurrent creates, so no in-process locking is
needed.
"""
import logging
from typing import Tuple

from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from nest_registry import crud
from nest_registry.core.auth import hash_credential, hash_password, issue_credential
from nest_registry.core.database import translate_db_error
from nest_registry.core.errors import (
    CREATED,
    UPDATED,
    ConflictError,
    NotAuthorizedError,
    NotFoundError,
    PublishResult,
    RegistryError,
)
from nest_registry.core.models import Author, Package, _now
from nest_registry.core.naming import validate_name

logger = logging.getLogger(__name__)


def publish_package(
    db: Session,
    credential: str,
    name: str,
    description: str = "",
    repository: str = "",
    locked: bool = False,
    malicious: bool = False,
    unlisted: bool = False
) -> PublishResult:
    """
    Create or update a package on behalf of the credential's author.

    | owner | exists | outcome                         |
    |-------|--------|---------------------------------|
    | yes   | yes    | update description/repository/unlisted |
    | yes   | no     | NotFound (stale ownership)      |
    | no    | yes    | NotAuthorized, nothing written  |
    | no    | no     | create package + ownership link |

    Never raises: every failure comes back as a PublishResult.
    """
    name = name.strip()
    try:
        key = validate_name(name)

        is_owner = crud.is_package_owner(db, credential, key)
        exists = crud.find_package_by_canonical_name(db, key) is not None

        if is_owner and exists:
            crud.update_package_metadata(db, key, {
                "description": description,
                "repository": repository,
                "unlisted": unlisted,
            })
            logger.info(f"Publish {name!r}: updated")
            return PublishResult.success(UPDATED)

        if is_owner:
            logger.error(f"Publish {name!r}: credential owns a package that does not exist")
            raise NotFoundError("Package", name)

        if exists:
            raise NotAuthorizedError()

        owner = crud.find_author_by_credential(db, credential)
        if owner is None:
            raise NotAuthorizedError()

        now = _now()
        package = Package(
            name=name,
            canonical_name=key,
            description=description,
            repository=repository,
            locked=locked,
            malicious=malicious,
            unlisted=unlisted,
            created_at=now,
            updated_at=now
        )
        crud.create_package(db, owner, package)
        logger.info(f"Publish {name!r}: created for {owner.name}")
        return PublishResult.success(CREATED)

    except RegistryError as e:
        db.rollback()
        logger.warning(f"Publish {name!r} rejected: {e.kind}: {e.message}")
        return PublishResult.failure(e)
    except DBAPIError as e:
        db.rollback()
        err = translate_db_error(e, f"publish package {name!r}")
        return PublishResult.failure(err)


def create_author(db: Session, name: str, secret: str) -> Tuple[Author, str]:
    """
    Register an author and issue their credential.

    Returns the author and the plain credential; the credential is not
    stored in clear and cannot be retrieved again. The secret is hashed.

    Raises:
        InvalidError: the name has no usable characters
        ConflictError: the canonical name is taken
    """
    name = name.strip()
    key = validate_name(name, field="author name")

    try:
        existing = crud.find_author_by_canonical_name(db, key)
    except DBAPIError as e:
        db.rollback()
        raise translate_db_error(e, f"create author {name!r}") from e
    if existing:
        db.rollback()
        raise ConflictError(f"Author name already taken: {name}")

    credential = issue_credential()
    author = Author(
        name=name,
        canonical_name=key,
        password_hash=hash_password(secret),
        credential_hash=hash_credential(credential),
        created_at=_now()
    )
    author = crud.create_author(db, author)
    return author, credential


def get_author_by_credential(db: Session, credential: str) -> Author:
    """Resolve the author behind a credential; raises NotAuthorizedError."""
    try:
        author = crud.find_author_by_credential(db, credential)
    except DBAPIError as e:
        db.rollback()
        raise translate_db_error(e, "credential lookup") from e
    if author is None:
        raise NotAuthorizedError("Invalid credential")
    return author
