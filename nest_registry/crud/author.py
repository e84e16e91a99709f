"""
Author CRUD operations.
Handles all database operations related to the Author model.
"""
from typing import List, Optional
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session
import logging

from nest_registry.core.auth import hash_credential
from nest_registry.core.database import translate_db_error
from nest_registry.core.errors import NotFoundError
from nest_registry.core.models import Author
from nest_registry.core.naming import canonicalize

logger = logging.getLogger(__name__)


# ========== CREATE Operations ==========

def create_author(db: Session, author: Author) -> Author:
    """
    Insert a new author.
    Raises ConflictError if the canonical name or the credential is taken.
    """
    db.add(author)
    try:
        db.commit()
    except DBAPIError as e:
        db.rollback()
        raise translate_db_error(e, f"create author {author.name!r}") from e
    db.refresh(author)

    logger.info(f"Created author: {author.name} (id={author.id})")
    return author


# ========== READ Operations ==========

def find_author_by_canonical_name(db: Session, key: str) -> Optional[Author]:
    """Get author by canonical name."""
    return db.query(Author).filter(Author.canonical_name == key).first()


def find_author_by_credential(db: Session, credential: str) -> Optional[Author]:
    """Get the author a credential was issued to."""
    return db.query(Author).filter(
        Author.credential_hash == hash_credential(credential)
    ).first()


def get_author(db: Session, name: str) -> Author:
    """Get author by display or canonical name; raises NotFoundError."""
    author = find_author_by_canonical_name(db, canonicalize(name))
    if not author:
        raise NotFoundError("Author", name)
    return author


def list_authors(db: Session) -> List[Author]:
    """List all authors ordered by canonical name."""
    return db.query(Author).order_by(Author.canonical_name).all()
