"""
Pydantic schemas for request/response models.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class NewAuthor(BaseModel):
    """Author registration request."""
    name: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class NewPackage(BaseModel):
    """Package publish request. The credential travels in X-Authorization."""
    name: str = Field(..., min_length=1)
    description: str = ""
    repository: str = ""
    locked: bool = False
    malicious: bool = False
    unlisted: bool = False


class NewPackageUpload(BaseModel):
    """Publish-and-upload request for one version of a package."""
    version: str = Field(..., min_length=1)
    description: str = ""
    repository: str = ""
    entry: str = ""
    upload: bool = True
    unlisted: bool = False
    tmp_id: str = ""
    manifest: str = ""
    prefix: Optional[str] = None


class PublishResultResponse(BaseModel):
    """Outcome of a publish or upload."""
    ok: bool
    msg: str
    outcome: Optional[str] = None
    error: Optional[str] = None


class PackageResponse(BaseModel):
    """Package metadata."""
    name: str
    canonical_name: str
    owner: str
    description: str
    repository: str
    latest_version: Optional[str] = None
    latest_stable_version: Optional[str] = None
    upload_names: List[str]
    locked: bool
    malicious: bool
    unlisted: bool
    created_at: datetime
    updated_at: datetime


class PublicAuthorResponse(BaseModel):
    """Author as anyone may see it."""
    name: str
    canonical_name: str
    package_names: List[str]
    created_at: datetime


class NewAuthorResponse(PublicAuthorResponse):
    """Freshly registered author. The only response that carries the credential."""
    credential: str
