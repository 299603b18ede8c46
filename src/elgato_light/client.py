"""HTTP client for the Elgato light API."""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import DeviceRejected, DeviceUnreachable, EmptyDeviceResponse, MalformedDeviceResponse
from .targets import Target

logger = logging.getLogger(__name__)

LIGHTS_PATH = "/elgato/lights"


def kelvin_to_mireds(kelvin: int) -> int:
    """Convert a colour temperature in Kelvin to the light's mired scale."""
    return 1_000_000 // kelvin


def mireds_to_kelvin(mireds: int) -> int:
    """Convert the light's mired scale back to Kelvin."""
    if mireds <= 0:
        return 0
    return 1_000_000 // mireds


class Light(BaseModel):
    """State of a single light."""

    on: int = Field(ge=0, le=1)
    brightness: int = Field(ge=0, le=100)
    temperature: int = Field(ge=0)

    @property
    def powered(self) -> bool:
        return self.on == 1

    @property
    def kelvin(self) -> int:
        return mireds_to_kelvin(self.temperature)


class LightStatus(BaseModel):
    """The status document a light serves at ``/elgato/lights``."""

    model_config = ConfigDict(populate_by_name=True)

    number_of_lights: int = Field(alias="numberOfLights")
    lights: list[Light]

    @classmethod
    def single(cls, on: bool, brightness: int, temperature: int) -> LightStatus:
        """Build a document describing one light."""
        light = Light(on=int(on), brightness=brightness, temperature=temperature)
        return cls(number_of_lights=1, lights=[light])

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class DeviceClient:
    """Client for reading and writing the state of Elgato lights."""

    def __init__(
        self,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the device client.

        Args:
            timeout: Request timeout in seconds
            transport: Optional httpx transport, mainly for tests
        """
        self.timeout = timeout
        self.transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the asynchronous HTTP client."""
        if self._client is None:
            limits = httpx.Limits(
                max_connections=10,
                max_keepalive_connections=5,
                keepalive_expiry=30.0,
            )
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                limits=limits,
                transport=self.transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> DeviceClient:
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        await self.aclose()

    async def _request(self, target: Target, method: str, **kwargs: Any) -> httpx.Response:
        url = target.url + LIGHTS_PATH
        logger.debug("%s %s", method, url)
        try:
            response = await self.client.request(method, url, **kwargs)
        except (httpx.TooManyRedirects, httpx.DecodingError) as e:
            raise MalformedDeviceResponse(target, str(e)) from e
        except httpx.HTTPError as e:
            raise DeviceUnreachable(target, e) from e
        # Lights never redirect; anything but 2xx is a refusal
        if not response.is_success:
            raise DeviceRejected(target, response.status_code)
        return response

    async def get_status(self, target: Target) -> LightStatus:
        """
        Read the current state of a light.

        Raises:
            DeviceUnreachable: The connection failed
            MalformedDeviceResponse: The body is not a status document
            EmptyDeviceResponse: The light reported no lights
        """
        response = await self._request(target, "GET")
        try:
            status = LightStatus.model_validate(response.json())
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedDeviceResponse(target, "body is not JSON") from e
        except ValidationError as e:
            raise MalformedDeviceResponse(target, f"{e.error_count()} invalid field(s)") from e

        if not status.lights:
            raise EmptyDeviceResponse(target)
        return status

    async def set_status(self, target: Target, status: LightStatus) -> None:
        """
        Write a new state to a light.

        Raises:
            DeviceUnreachable: The connection failed
            DeviceRejected: The light answered with a non-2xx status
        """
        await self._request(target, "PUT", json=status.to_wire())
