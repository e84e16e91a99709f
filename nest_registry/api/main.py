"""
FastAPI application for the package registry.
Thin transport: parses typed requests, calls the registry core and renders
its results. Blocking store calls run in FastAPI's thread pool.
"""
import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from nest_registry import crud
from nest_registry.api.schemas import (
    NewAuthor,
    NewAuthorResponse,
    NewPackage,
    NewPackageUpload,
    PackageResponse,
    PublicAuthorResponse,
    PublishResultResponse,
)
from nest_registry.core.config import settings
from nest_registry.core.database import get_db, init_db, translate_db_error
from nest_registry.core.errors import NotAuthorizedError, PublishResult, RegistryError
from nest_registry.core.models import Author, Package
from nest_registry.services.content_service import ContentServiceClient, get_content_client
from nest_registry.services.publication import create_author, get_author_by_credential, publish_package
from nest_registry.services.uploads import publish_upload
from nest_registry.utils.logger import setup_logging

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description="Package registry: authors, packages and upload sessions"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ========== Error Handling ==========

@app.exception_handler(RegistryError)
async def registry_error_handler(request: Request, exc: RegistryError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(DBAPIError)
async def database_error_handler(request: Request, exc: DBAPIError):
    err = translate_db_error(exc, f"{request.method} {request.url.path}")
    return JSONResponse(status_code=err.status_code, content=err.to_dict())


# ========== Helper Functions ==========

def require_credential(
    x_authorization: Optional[str] = Header(default=None, alias="X-Authorization")
) -> str:
    """Extract the author credential from the X-Authorization header."""
    if not x_authorization:
        raise NotAuthorizedError("Credential required")

    # Handle "bearer <token>" format
    token = x_authorization
    if token.lower().startswith("bearer "):
        token = token[7:]
    return token.strip()


def package_response(package: Package) -> PackageResponse:
    return PackageResponse(
        name=package.name,
        canonical_name=package.canonical_name,
        owner=package.owner_name,
        description=package.description,
        repository=package.repository,
        latest_version=package.latest_version,
        latest_stable_version=package.latest_stable_version,
        upload_names=package.upload_names,
        locked=package.locked,
        malicious=package.malicious,
        unlisted=package.unlisted,
        created_at=package.created_at,
        updated_at=package.updated_at,
    )


def author_response(author: Author) -> PublicAuthorResponse:
    return PublicAuthorResponse(
        name=author.name,
        canonical_name=author.canonical_name,
        package_names=sorted(author.owned_packages),
        created_at=author.created_at,
    )


def result_response(result: PublishResult) -> JSONResponse:
    return JSONResponse(status_code=result.status_code, content=result.to_dict())


# ========== Startup Events ==========

@app.on_event("startup")
async def startup_event():
    """Create tables on startup."""
    logger.info("Starting package registry API...")
    init_db()
    logger.info("API startup complete")


# ========== Health Endpoints ==========

@app.get("/", response_class=PlainTextResponse)
async def index():
    return "Welcome to the Nest registry API"


@app.get("/health")
async def health_check():
    """Heartbeat check."""
    return {"status": "ok"}


# ========== Packages ==========

@app.get("/packages", response_model=List[PackageResponse])
def list_packages(db: Session = Depends(get_db)):
    return [package_response(package) for package in crud.list_packages(db)]


@app.get("/packages/{name}", response_model=PackageResponse)
def get_package(name: str, db: Session = Depends(get_db)):
    return package_response(crud.get_package(db, name))


@app.post("/packages", response_model=PublishResultResponse)
def create_package(
    new_package: NewPackage,
    credential: str = Depends(require_credential),
    db: Session = Depends(get_db)
):
    """Publish package metadata: create on first publish, update for the owner."""
    result = publish_package(
        db,
        credential=credential,
        name=new_package.name,
        description=new_package.description,
        repository=new_package.repository,
        locked=new_package.locked,
        malicious=new_package.malicious,
        unlisted=new_package.unlisted
    )
    return result_response(result)


@app.post("/packages/{name}/uploads", response_model=PublishResultResponse)
def upload_package(
    name: str,
    new_upload: NewPackageUpload,
    credential: str = Depends(require_credential),
    db: Session = Depends(get_db),
    content_client: ContentServiceClient = Depends(get_content_client)
):
    """Publish a package version and record its uploaded content."""
    result = publish_upload(
        db,
        content_client,
        credential=credential,
        name=name,
        version=new_upload.version,
        tmp_id=new_upload.tmp_id,
        entry=new_upload.entry,
        description=new_upload.description,
        repository=new_upload.repository,
        manifest=new_upload.manifest,
        prefix=new_upload.prefix,
        unlisted=new_upload.unlisted,
        upload=new_upload.upload
    )
    return result_response(result)


# ========== Authors ==========

@app.get("/authors", response_model=List[PublicAuthorResponse])
def list_authors(db: Session = Depends(get_db)):
    return [author_response(author) for author in crud.list_authors(db)]


@app.get("/authors/{name}", response_model=PublicAuthorResponse)
def get_author(name: str, db: Session = Depends(get_db)):
    return author_response(crud.get_author(db, name))


@app.get("/author", response_model=PublicAuthorResponse)
def get_current_author(
    credential: str = Depends(require_credential),
    db: Session = Depends(get_db)
):
    """The author behind the supplied credential."""
    return author_response(get_author_by_credential(db, credential))


@app.post("/authors", response_model=NewAuthorResponse, status_code=201)
def register_author(new_author: NewAuthor, db: Session = Depends(get_db)):
    """Register an author. The response carries the credential exactly once."""
    author, credential = create_author(db, new_author.name, new_author.password)
    public = author_response(author)
    return NewAuthorResponse(**public.model_dump(), credential=credential)
