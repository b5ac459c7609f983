"""stingray - Environment beacons for aiohttp clients and servers."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("stingray")
except PackageNotFoundError:
    __version__ = "0+local"
from stingray._transport import Delivery, HttpDelivery
from stingray.client import Stingray
from stingray.codec import decode, encode
from stingray.config import IgnoreSet, StingrayConfig
from stingray.environment import Environment
from stingray.exceptions import (
    StingrayConfigError,
    StingrayDeliveryError,
    StingrayError,
    StingrayTimeoutError,
)
from stingray.middleware import BeaconEndpoint, beacon_middleware
from stingray.payload import assemble

__all__ = [
    "__version__",
    "BeaconEndpoint",
    "Delivery",
    "Environment",
    "HttpDelivery",
    "IgnoreSet",
    "Stingray",
    "StingrayConfig",
    "StingrayConfigError",
    "StingrayDeliveryError",
    "StingrayError",
    "StingrayTimeoutError",
    "assemble",
    "beacon_middleware",
    "decode",
    "encode",
]
