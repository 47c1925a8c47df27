"""Receiving container images and plugins over a deploy stream."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from types import TracebackType
from typing import BinaryIO, Protocol, runtime_checkable

from .manager import ContainerManager, ManagerOptions
from .messages import (
    DeployRequest,
    DeployResponse,
    ImageTransfer,
    ImageTransferEnd,
    ImageTransferProgress,
    ImageTransferReady,
    ImageTransferSuccess,
)
from .status import Code, StatusError

logger = logging.getLogger(__name__)

PLUGIN_LOCATION = "/plugins"


@runtime_checkable
class DeployStream(Protocol):
    """The two-way stream of a deploy call."""

    def recv(self) -> DeployRequest:
        """Return the next request; raise EOFError once the client has finished sending."""

    def send(self, message: DeployResponse) -> None:
        """Send one response to the client."""


class ChunkWriter:
    """A temporary file in ``directory`` that received image data is written to.

    Closing the writer deletes the file unless it has already been moved away.
    """

    def __init__(self, directory: str, chunk_size: int) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk size must be positive, got {chunk_size}")
        self.chunk_size = chunk_size
        fd, self.name = tempfile.mkstemp(dir=directory, prefix="containerz-", suffix=".tar")
        self.file: BinaryIO = os.fdopen(fd, "wb", buffering=chunk_size)
        self.size = 0

    def write(self, data: bytes) -> int:
        """Append ``data`` to the file and return the number of bytes written."""
        written = self.file.write(data)
        self.size += written
        return written

    def close(self) -> None:
        """Close the file and remove it from disk."""
        if not self.file.closed:
            self.file.close()
        try:
            os.remove(self.name)
        except FileNotFoundError:
            pass

    def __enter__(self) -> ChunkWriter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        try:
            self.close()
        except OSError as err:
            logger.error("unable to clean up %s: %s", self.name, err)


def deploy(
    manager: ContainerManager,
    stream: DeployStream,
    tmp_location: str,
    chunk_size: int,
    plugin_location: str = PLUGIN_LOCATION,
) -> None:
    """Receive an image or plugin from ``stream`` and load it onto the target.

    The first message must be an image transfer. If it asks for a remote
    download the image is pulled by the manager; otherwise the image data is
    received in chunks and pushed to the manager, or stored as a plugin.
    """
    try:
        message = stream.recv()
    except EOFError:
        return
    except Exception as err:
        logger.error("deploy failed: %s", err)
        raise StatusError(Code.INTERNAL, str(err)) from err

    request = message.request
    if isinstance(request, (bytes, bytearray, ImageTransferEnd)):
        raise StatusError(Code.UNAVAILABLE, "must send send a TransferImage message first")
    if not isinstance(request, ImageTransfer):
        raise StatusError(Code.INVALID_ARGUMENT, f"unknown request type {type(request).__name__}")

    if request.remote_download is not None:
        options = ManagerOptions(stream=stream, registry_auth=request.remote_download.credentials)
        manager.image_pull(request.name, request.tag, options)
        stream.send(
            DeployResponse(ImageTransferSuccess(name=request.name, tag=request.tag))
        )
        return

    _handle_image_transfer(manager, stream, request, tmp_location, chunk_size, plugin_location)


def _send(stream: DeployStream, response: DeployResponse) -> None:
    try:
        stream.send(response)
    except Exception as err:
        raise StatusError(Code.UNAVAILABLE, f"client is not ready: {err}") from err


def _handle_image_transfer(
    manager: ContainerManager,
    stream: DeployStream,
    transfer: ImageTransfer,
    tmp_location: str,
    chunk_size: int,
    plugin_location: str,
) -> None:
    check_disk_space(tmp_location, transfer.image_size)

    try:
        writer = ChunkWriter(tmp_location, chunk_size)
    except (OSError, ValueError) as err:
        raise StatusError(Code.INTERNAL, str(err)) from err

    with writer:
        _send(stream, DeployResponse(ImageTransferReady(chunk_size=chunk_size)))

        while True:
            try:
                message = stream.recv()
            except EOFError as err:
                raise StatusError(
                    Code.UNKNOWN, "unexpected EOF while receiving image: EOF"
                ) from err
            except Exception as err:
                raise StatusError(Code.INTERNAL, str(err)) from err

            request = message.request
            if isinstance(request, (bytes, bytearray)):
                writer.write(request)
                if writer.size > transfer.image_size:
                    raise StatusError(Code.INVALID_ARGUMENT, "too much data received")
                _send(stream, DeployResponse(ImageTransferProgress(bytes_received=writer.size)))
            elif isinstance(request, ImageTransferEnd):
                writer.file.flush()
                if transfer.is_plugin:
                    destination = os.path.join(plugin_location, f"{transfer.name}.tar")
                    try:
                        move_file(writer.name, destination)
                    except OSError as err:
                        raise StatusError(Code.INTERNAL, f"unable to move plugin: {err}") from err
                    _send(
                        stream,
                        DeployResponse(
                            ImageTransferSuccess(name=transfer.name, image_size=writer.size)
                        ),
                    )
                    return

                options = ManagerOptions(target_name=transfer.name, target_tag=transfer.tag)
                with open(writer.name, "rb") as image_file:
                    image, tag = manager.image_push(image_file, options)
                _send(
                    stream,
                    DeployResponse(
                        ImageTransferSuccess(name=image, tag=tag, image_size=writer.size)
                    ),
                )
                return
            else:
                raise StatusError(
                    Code.INTERNAL, f"unexpected message type {type(request).__name__}"
                )


def check_disk_space(location: str, bytes_needed: int) -> None:
    """Raise a StatusError unless ``location`` has ``bytes_needed`` bytes free."""
    try:
        available = disk_space(location)
    except OSError as err:
        raise StatusError(Code.INTERNAL, f"unable to check free space: {err}") from err
    if available < bytes_needed:
        raise StatusError(Code.RESOURCE_EXHAUSTED, "not enough space to store image")


def disk_space(location: str) -> int:
    """Return the bytes available to unprivileged users on the filesystem of ``location``."""
    stat = os.statvfs(location)
    return stat.f_bavail * stat.f_frsize


def move_file(source_path: str, dest_path: str) -> None:
    """Move a file by copying it and deleting the source, which works across devices."""
    directory = os.path.dirname(dest_path)
    try:
        os.makedirs(directory or ".", mode=0o755, exist_ok=True)
    except OSError as err:
        raise OSError(f"failed to create {directory} with error {err}") from err
    try:
        source = open(source_path, "rb")
    except OSError as err:
        raise OSError(f"unable to open source file: {err}") from err
    with source:
        try:
            destination = open(dest_path, "wb")
        except OSError as err:
            raise OSError(f"unable to open dest file: {err}") from err
        with destination:
            try:
                shutil.copyfileobj(source, destination)
            except OSError as err:
                raise OSError(f"writing to output file failed: {err}") from err
    try:
        os.remove(source_path)
    except OSError as err:
        raise OSError(f"failed removing original file: {err}") from err