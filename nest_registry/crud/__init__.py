"""
Registry store operations.
Organized by entity: authors, packages and upload sessions.
"""

# Author operations
from .author import (
    create_author,
    find_author_by_canonical_name,
    find_author_by_credential,
    get_author,
    list_authors
)

# Package operations
from .package import (
    append_owned_package,
    create_package,
    find_package_by_canonical_name,
    is_package_owner,
    get_package,
    list_packages,
    update_package_metadata
)

# Upload operations
from .upload import (
    upload_identity,
    create_upload_session,
    find_upload_session,
    list_upload_sessions
)

__all__ = [
    # Author
    "create_author",
    "find_author_by_canonical_name",
    "find_author_by_credential",
    "get_author",
    "list_authors",
    # Package
    "append_owned_package",
    "create_package",
    "find_package_by_canonical_name",
    "is_package_owner",
    "get_package",
    "list_packages",
    "update_package_metadata",
    # Upload
    "upload_identity",
    "create_upload_session",
    "find_upload_session",
    "list_upload_sessions",
]
