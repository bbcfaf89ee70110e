"""
Module: dog_api.py
Description: Client for the third-party random dog image service.

Fetches a fresh image payload to hand back to the caller. The service
is treated as an opaque JSON endpoint whose 'message' field holds an
image URL.
"""

from typing import Any, Dict, Optional

import httpx

from gallery_gateway.utils.errors import ContentFetchError
from gallery_gateway.utils.logger import get_logger

logger = get_logger(__name__)


class DogImageClient:
    """
    HTTP client for the random image endpoint.

    Applies a bounded timeout and turns every failure into
    ContentFetchError; the raw upstream error is only logged.
    """

    def __init__(
        self,
        api_url: str,
        timeout_seconds: float = 5.0,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize the content client.

        Args:
            api_url: Endpoint returning {"message": <image url>, ...}
            timeout_seconds: HTTP timeout in seconds
            http_client: Optional shared client (a short-lived client is
                created per call when omitted)

        Raises:
            ValueError: If api_url is invalid
        """
        if not api_url or not isinstance(api_url, str):
            raise ValueError("api_url must be a non-empty string")
        if not api_url.startswith(('http://', 'https://')):
            raise ValueError("api_url must be a valid HTTP/HTTPS URL")

        self.api_url = api_url
        self.timeout = httpx.Timeout(timeout_seconds, connect=timeout_seconds)
        self._http_client = http_client

    async def fetch_random_image(self) -> Dict[str, Any]:
        """
        Fetch a random image payload.

        Returns:
            Decoded JSON object, e.g.
            {"message": "https://images.dog.ceo/breeds/pug/1.jpg", "status": "success"}

        Raises:
            ContentFetchError: On timeout, network error, non-2xx status
                or a body without a string 'message'
        """
        try:
            if self._http_client is not None:
                response = await self._http_client.get(self.api_url, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(self.api_url)

            response.raise_for_status()
            payload = response.json()

        except httpx.TimeoutException:
            logger.warning(
                "Dog API timeout",
                api_url=self.api_url
            )
            raise ContentFetchError()

        except httpx.HTTPStatusError as e:
            logger.warning(
                "Dog API HTTP error",
                api_url=self.api_url,
                status_code=e.response.status_code,
                response=e.response.text[:500]
            )
            raise ContentFetchError()

        except httpx.HTTPError as e:
            logger.warning(
                "Dog API network error",
                api_url=self.api_url,
                error=str(e),
                error_type=type(e).__name__
            )
            raise ContentFetchError()

        except ValueError as e:
            logger.warning(
                "Dog API returned invalid JSON",
                api_url=self.api_url,
                error=str(e)
            )
            raise ContentFetchError()

        if not isinstance(payload, dict) or not isinstance(payload.get("message"), str):
            logger.warning(
                "Dog API response missing image URL",
                api_url=self.api_url
            )
            raise ContentFetchError()

        logger.info(
            "Dog image fetched",
            image_url=payload["message"],
            status_code=response.status_code
        )
        return payload
