from nest_registry.core.database import Base, get_db
from nest_registry.core.models import Author, Package, UploadSession
from nest_registry.core.naming import canonicalize, validate_name
from nest_registry.core.auth import (
    issue_credential,
    hash_credential,
    hash_password,
)
from nest_registry.core.errors import (
    RegistryError,
    NotFoundError,
    ConflictError,
    NotAuthorizedError,
    InvalidError,
    UnavailableError,
    PublishResult,
)

__all__ = [
    'Base',
    'get_db',
    'Author',
    'Package',
    'UploadSession',
    'canonicalize',
    'validate_name',
    'issue_credential',
    'hash_credential',
    'hash_password',
    'RegistryError',
    'NotFoundError',
    'ConflictError',
    'NotAuthorizedError',
    'InvalidError',
    'UnavailableError',
    'PublishResult',
]
