"""
Name canonicalization.
Maps human-entered package and author names to the key used for uniqueness
and lookup. Two names with the same key are the same registry entity.
"""
import re
import unicodedata

from nest_registry.core.config import settings
from nest_registry.core.errors import InvalidError

_SEPARATORS = re.compile(r"[\s._-]+")


def canonicalize(raw: str) -> str:
    """
    Return the canonical comparison key for a name.

    Pure, total and idempotent. Folds case and compatibility forms, and
    collapses whitespace, '.', '_' and '-' runs into a single '-'. May
    return an empty string.
    """
    folded = unicodedata.normalize("NFKC", unicodedata.normalize("NFKC", raw).casefold())
    return _SEPARATORS.sub("-", folded).strip("-")


def validate_name(raw: str, field: str = "name") -> str:
    """Canonicalize a name, raising InvalidError when it cannot be a registry key."""
    limit = settings.max_name_length
    if len(raw) > limit:
        raise InvalidError(f"{field} is longer than {limit} characters", field=field)
    key = canonicalize(raw)
    if not key:
        raise InvalidError(f"{field} has no usable characters: {raw!r}", field=field)
    # Compatibility folding can expand a name past the stored key width
    if len(key) > limit:
        raise InvalidError(f"{field} normalizes to more than {limit} characters", field=field)
    return key
