"""
Database models for the package registry.
Authors own packages through Package.owner_id; uploads belong to a package.
"""
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Author(Base):
    """Package author. The credential is only stored hashed."""
    __tablename__ = "authors"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    canonical_name = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    credential_hash = Column(String(64), unique=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    # Relationships
    packages = relationship("Package", back_populates="owner", order_by="Package.name")

    @property
    def owned_packages(self) -> set:
        """Names of the packages whose owner is this author."""
        return {package.name for package in self.packages}

    def __repr__(self) -> str:
        return f"<Author {self.name!r}>"


class Package(Base):
    """Package metadata. One owner, many uploads."""
    __tablename__ = "packages"

    name = Column(String(255), primary_key=True)
    canonical_name = Column(String(255), unique=True, nullable=False, index=True)
    owner_id = Column(Integer, ForeignKey("authors.id"), nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    repository = Column(Text, nullable=False, default="")
    # Written by version resolution, never by the publication coordinator
    latest_version = Column(String(64), nullable=True)
    latest_stable_version = Column(String(64), nullable=True)
    locked = Column(Boolean, nullable=False, default=False)
    malicious = Column(Boolean, nullable=False, default=False)
    unlisted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    # Relationships
    owner = relationship("Author", back_populates="packages")
    uploads = relationship("UploadSession", back_populates="package", order_by="UploadSession.id")

    @property
    def owner_name(self) -> str:
        return self.owner.name

    @property
    def upload_names(self) -> list:
        """Upload identifiers in the order they were recorded."""
        return [upload.name for upload in self.uploads]

    def __repr__(self) -> str:
        return f"<Package {self.name!r}>"


class UploadSession(Base):
    """One completed publish-and-upload cycle, identified by name@version."""
    __tablename__ = "package_uploads"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(320), unique=True, nullable=False, index=True)
    package_name = Column(String(255), ForeignKey("packages.name"), nullable=False, index=True)
    entry = Column(String(500), nullable=False, default="")
    version = Column(String(64), nullable=False)
    prefix = Column(String(255), nullable=False, default="")
    manifest = Column(Text, nullable=False, default="")
    content_ref = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    # Relationships
    package = relationship("Package", back_populates="uploads")

    def __repr__(self) -> str:
        return f"<UploadSession {self.name!r}>"
