"""
Client for the external content-addressing service.
The service turns a temporary upload handle into a permanent content
reference (a transaction id). The registry only stores that reference.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import requests

from nest_registry.core.config import settings
from nest_registry.core.errors import UnavailableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContentReference:
    """Placement of uploaded content, as reported by the content service."""

    content_ref: str
    name: str
    relative_path: str


class ContentServiceClient:
    """
    Resolves temporary upload handles through the content-addressing service.
    Never called while a database transaction is open.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the content service client.

        Args:
            base_url: Service root, defaults to settings.content_service_url
            timeout: Request timeout in seconds
            session: Optional pre-configured requests session
        """
        self.base_url = (base_url or settings.content_service_url).rstrip("/")
        self.timeout = timeout or settings.content_service_timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    def resolve(self, tmp_id: str) -> ContentReference:
        """
        Exchange a temporary upload handle for a content reference.

        Raises:
            UnavailableError: the service is unreachable, failed, or answered
                with something that is not a content reference
        """
        url = f"{self.base_url}/tx/new"

        try:
            response = self.session.post(url, json={"tmp_id": tmp_id}, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Content service request failed for tmp_id={tmp_id}: {e}")
            raise UnavailableError(
                "Content service is unavailable", details={"tmp_id": tmp_id}
            ) from e

        if not isinstance(payload, dict) or not payload.get("tx_id"):
            logger.error(f"Content service returned no tx_id for tmp_id={tmp_id}: {payload!r}")
            raise UnavailableError(
                "Content service returned a malformed response", details={"tmp_id": tmp_id}
            )

        reference = ContentReference(
            content_ref=str(payload["tx_id"]),
            name=str(payload.get("name", "")),
            relative_path=str(payload.get("relative_path", "")),
        )
        logger.info(f"Resolved tmp_id={tmp_id} to content_ref={reference.content_ref}")
        return reference


_client: Optional[ContentServiceClient] = None


def get_content_client() -> ContentServiceClient:
    """Shared client, created on first use. Also a FastAPI dependency."""
    global _client
    if _client is None:
        _client = ContentServiceClient()
    return _client
