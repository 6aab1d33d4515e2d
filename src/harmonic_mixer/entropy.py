"""HTTP client for the external high-entropy (random hex digit) service.

The service answers ``GET {api_url}?length=N`` with a JSON body of the form
``{"data": "<hex digits>"}``.
"""

import logging
import re
from typing import Optional

import httpx

from .exceptions import EntropyServiceError, InvalidArgumentError

logger = logging.getLogger(__name__)

DEFAULT_ENTROPY_URL = "https://api.shitchell.com/qrng"

_HEX_PATTERN = re.compile(r"^[0-9a-fA-F]*$")


class EntropyClient:
    """Asynchronous client for the entropy service.

    Every failure mode (non-2xx status, timeout, transport error, malformed
    body) surfaces as EntropyServiceError so the caller has a single thing
    to recover from.

    Attributes:
        api_url: Service endpoint
        timeout: Per-request timeout in seconds

    Example:
        >>> async with EntropyClient() as client:
        ...     digits = await client.fetch_hex(64)
    """

    def __init__(
        self,
        api_url: str = DEFAULT_ENTROPY_URL,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize entropy client.

        Args:
            api_url: Endpoint returning random hex digits
            timeout: Request timeout in seconds
            client: Optional pre-built httpx.AsyncClient (not closed by aclose())
        """
        if not api_url or not api_url.startswith(("http://", "https://")):
            raise InvalidArgumentError("api_url must be a valid HTTP/HTTPS URL")

        self.api_url = api_url
        self.timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
        )

    async def fetch_hex(self, length: int) -> str:
        """Fetch ``length`` random hex digits, lowercased.

        The service may return fewer digits than requested; callers get what
        was returned.

        Raises:
            EntropyServiceError: For any network, status or payload problem
        """
        if length <= 0:
            raise InvalidArgumentError("length must be positive")

        try:
            response = await self._client.get(self.api_url, params={"length": length})
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as e:
            raise EntropyServiceError(f"Entropy service timed out: {e}") from e
        except httpx.HTTPStatusError as e:
            raise EntropyServiceError(
                f"Entropy service returned {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise EntropyServiceError(f"Entropy service unreachable: {e}") from e
        except ValueError as e:
            raise EntropyServiceError(f"Entropy service returned invalid JSON: {e}") from e

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, str):
            raise EntropyServiceError("Entropy service response has no 'data' string")
        if not _HEX_PATTERN.match(data):
            raise EntropyServiceError("Entropy service returned non-hexadecimal data")

        logger.debug(f"Fetched {len(data)} hex digits from {self.api_url}")
        return data.lower()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "EntropyClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
