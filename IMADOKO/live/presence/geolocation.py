import asyncio
import logging

from .exceptions import PositionUnavailable
from .types import Coord

logger = logging.getLogger(__name__)


class PositionProvider:
    """Single-shot geolocation. May fail, may never answer."""

    async def get_current_position(self) -> Coord:
        raise NotImplementedError


class StaticPositionProvider(PositionProvider):
    """Always reports the same spot. Used by the terminal client."""

    def __init__(self, lat, lng):
        self.coord = Coord.from_pair(lat, lng)

    async def get_current_position(self):
        return self.coord


async def acquire_position(provider, timeout) -> Coord:
    try:
        coord = await asyncio.wait_for(provider.get_current_position(), timeout)
    except asyncio.TimeoutError:
        raise PositionUnavailable(f"no position within {timeout}s")
    except PositionUnavailable:
        raise
    except Exception as e:
        raise PositionUnavailable(str(e)) from e
    if coord is None:
        raise PositionUnavailable("provider returned nothing")
    return coord
