"""Settings of the containerz server and the options that change them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

DEFAULT_ADDR = ":9999"
DEFAULT_TEMP_LOCATION = "/tmp"
DEFAULT_CHUNK_SIZE = 5_000_000


@dataclass
class ServerSettings:
    """Where the server listens, where uploads go, and the upload chunk size."""

    addr: str = DEFAULT_ADDR
    tmp_location: str = DEFAULT_TEMP_LOCATION
    chunk_size: int = DEFAULT_CHUNK_SIZE


Option = Callable[[ServerSettings], None]


def with_addr(addr: str) -> Option:
    """Set the address the server listens on."""

    def apply(settings: ServerSettings) -> None:
        settings.addr = addr

    return apply


def with_temp_location(tmp: str) -> Option:
    """Set the directory image uploads are written to."""

    def apply(settings: ServerSettings) -> None:
        settings.tmp_location = tmp

    return apply


def with_chunk_size(chunk_size: int) -> Option:
    """Set the chunk size the server supports."""

    def apply(settings: ServerSettings) -> None:
        settings.chunk_size = chunk_size

    return apply


def apply_options(settings: ServerSettings, *args: Option) -> ServerSettings:
    """Apply each option to ``settings`` in order and return it."""
    for option in args:
        option(settings)
    return settings