"""
Package CRUD operations.
Handles all database operations related to the Package model, including
the ownership link between a package and its author.
"""
from typing import Any, Dict, List, Optional
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session
import logging

from nest_registry.core.auth import hash_credential
from nest_registry.core.database import translate_db_error
from nest_registry.core.errors import InvalidError, NotFoundError
from nest_registry.core.models import Author, Package, _now
from nest_registry.core.naming import canonicalize

logger = logging.getLogger(__name__)

# Fields an owner may change when republishing
PACKAGE_METADATA_FIELDS = ("description", "repository", "unlisted")


# ========== CREATE Operations ==========

def append_owned_package(owner: Author, package: Package) -> None:
    """
    Link a package to its owner.
    Never commits: only valid inside create_package's unit of work.
    """
    owner.packages.append(package)


def create_package(db: Session, owner: Author, package: Package) -> Package:
    """
    Insert a package and add it to its owner's package set in one commit.
    Raises ConflictError if a package with the same canonical name exists,
    including one committed concurrently since it was last looked up.
    """
    append_owned_package(owner, package)
    db.add(package)
    try:
        db.commit()
    except DBAPIError as e:
        db.rollback()
        raise translate_db_error(e, f"create package {package.name!r}") from e
    db.refresh(package)

    logger.info(f"Created package: {package.name} (owner={owner.name})")
    return package


# ========== READ Operations ==========

def find_package_by_canonical_name(db: Session, key: str) -> Optional[Package]:
    """Get package by canonical name."""
    return db.query(Package).filter(Package.canonical_name == key).first()


def is_package_owner(db: Session, credential: str, key: str) -> bool:
    """Check whether the credential's author owns the package with this canonical name."""
    row = db.query(Package.name).join(Package.owner).filter(
        Author.credential_hash == hash_credential(credential),
        Package.canonical_name == key
    ).first()
    return row is not None


def get_package(db: Session, name: str) -> Package:
    """Get package by display or canonical name; raises NotFoundError."""
    package = find_package_by_canonical_name(db, canonicalize(name))
    if not package:
        raise NotFoundError("Package", name)
    return package


def list_packages(db: Session) -> List[Package]:
    """List all packages ordered by canonical name."""
    return db.query(Package).order_by(Package.canonical_name).all()


# ========== UPDATE Operations ==========

def update_package_metadata(db: Session, key: str, fields: Dict[str, Any]) -> Package:
    """
    Update the mutable metadata of a package and bump updated_at.
    Ownership, name, flags other than unlisted and created_at are untouched.
    """
    unknown = set(fields) - set(PACKAGE_METADATA_FIELDS)
    if unknown:
        raise InvalidError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

    package = find_package_by_canonical_name(db, key)
    if not package:
        raise NotFoundError("Package", key)

    for field, value in fields.items():
        setattr(package, field, value)
    package.updated_at = _now()

    try:
        db.commit()
    except DBAPIError as e:
        db.rollback()
        raise translate_db_error(e, f"update package {package.name!r}") from e
    db.refresh(package)

    logger.info(f"Updated package: {package.name}")
    return package
