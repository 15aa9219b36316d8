"""PlantUML render service client."""

import base64
from typing import Literal

import httpx
from loguru import logger

from .encoding import encode_plantuml
from .exceptions import InvalidUMLCodeError, RenderTimeoutError, RenderUnavailableError

ResponseType = Literal["SVG", "PNG"]

MIME_TYPES: dict[str, str] = {
    "SVG": "image/svg+xml",
    "PNG": "image/png",
}


def to_data_uri(content: bytes, response_type: ResponseType) -> str:
    """Encode rendered diagram bytes as a ``data:`` URI."""
    payload = base64.b64encode(content).decode("ascii")
    return f"data:{MIME_TYPES[response_type]};base64,{payload}"


def _format_seconds(seconds: float) -> str:
    return str(int(seconds)) if float(seconds).is_integer() else str(seconds)


class RenderClient:
    """Fetch rendered diagrams from a PlantUML server.

    Transport failures are normalized into the three render error kinds before
    they leave this class.
    """

    def __init__(
        self,
        server_url: str,
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            server_url: Base URL of the PlantUML server, e.g. ``https://www.plantuml.com/plantuml``.
            timeout: Seconds to wait for the whole request.
            client: Optional shared ``httpx.AsyncClient``; one is created on startup otherwise.
        """
        self.server_url = server_url.rstrip("/")
        self.timeout = timeout
        self.client = client

    async def startup(self) -> None:
        if self.client is None:
            self.client = httpx.AsyncClient(follow_redirects=True)

    async def shutdown(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None

    def diagram_url(self, uml_code: str, response_type: ResponseType) -> str:
        """Build the GET URL for a diagram."""
        return f"{self.server_url}/{response_type.lower()}/{encode_plantuml(uml_code)}"

    async def fetch(self, uml_code: str, response_type: ResponseType) -> bytes:
        """Render UML source and return the raw image bytes.

        Raises:
            RenderTimeoutError: The server did not answer in time.
            InvalidUMLCodeError: The server rejected the source with HTTP 400.
            RenderUnavailableError: Any other failure.
        """
        if self.client is None:
            await self.startup()

        url = self.diagram_url(uml_code, response_type)
        logger.debug(f"Fetching {response_type} diagram from render service")

        try:
            response = await self.client.get(url, timeout=self.timeout)  # type: ignore[union-attr]
            response.raise_for_status()
        except httpx.TimeoutException as e:
            logger.warning(f"Render service timed out after {self.timeout}s")
            raise RenderTimeoutError(
                f"The request timed out after {_format_seconds(self.timeout)} seconds."
            ) from e
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 400:
                logger.info("Render service rejected UML source")
                raise InvalidUMLCodeError() from e
            logger.error(f"Render service error: HTTP {e.response.status_code}")
            raise RenderUnavailableError() from e
        except httpx.HTTPError as e:
            logger.error(f"Render service unavailable: {e}")
            raise RenderUnavailableError() from e

        return response.content

    async def health_check(self) -> bool:
        """Check if the client is ready to issue requests."""
        return self.client is not None and not self.client.is_closed
