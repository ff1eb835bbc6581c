"""
Client for the identifier source endpoint.

The endpoint answers a GET with a JSON array of non-negative integers,
oldest first, e.g. ``[1, 2, 3, 7]``.
"""

from typing import Annotated, List

import httpx
import structlog
from pydantic import Field, StrictInt, TypeAdapter, ValidationError

from trigger.exceptions import DecodeError, TransportError

logger = structlog.get_logger(__name__)

Identifier = Annotated[StrictInt, Field(ge=0)]

_identifier_list = TypeAdapter(List[Identifier])


def decode_identifiers(body: bytes, url: str) -> List[int]:
    """
    Decode a response body into an identifier list.

    Args:
        body: Raw response body
        url: Endpoint the body came from, used in error messages

    Returns:
        Identifiers in the order the endpoint returned them

    Raises:
        DecodeError: If the body is not a JSON array of non-negative integers
    """
    try:
        return _identifier_list.validate_json(body, strict=True)
    except ValidationError as e:
        raise DecodeError(url, f"invalid identifier list: {e.error_count()} error(s), first: {e.errors()[0]['msg']}") from e


class SourceClient:
    """Fetches the current identifier list from the source endpoint."""

    def __init__(self, source_url: str, http_client: httpx.AsyncClient):
        """
        Initialize source client.

        Args:
            source_url: Fully-qualified endpoint URL
            http_client: Shared HTTP client (owns timeout and headers)
        """
        self.source_url = source_url
        self.http_client = http_client
        self.logger = logger.bind(component="source_client", url=source_url)

    async def fetch(self) -> List[int]:
        """
        Fetch and decode the identifier list.

        Raises:
            TransportError: On connection failure, timeout or non-2xx status
            DecodeError: If the body is not a valid identifier list
        """
        try:
            response = await self.http_client.get(self.source_url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise TransportError(self.source_url, f"{type(e).__name__}: {e}") from e

        ids = decode_identifiers(response.content, self.source_url)
        self.logger.debug("Fetched identifiers", count=len(ids))
        return ids
