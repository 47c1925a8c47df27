"""Request and response messages of the containerz service."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Union


class Driver(IntEnum):
    """Volume storage drivers."""

    DS_UNSPECIFIED = 0
    DS_LOCAL = 1
    DS_CUSTOM = 2


@dataclass
class Filter:
    key: str = ""
    value: list[str] = field(default_factory=list)


@dataclass
class ListContainerRequest:
    all: bool = False
    limit: int = 0
    filter: list[Filter] = field(default_factory=list)


@dataclass
class ListContainerResponse:
    id: str = ""
    name: str = ""
    image_name: str = ""
    labels: dict[str, str] = field(default_factory=dict)


@dataclass
class ListImageRequest:
    limit: int = 0
    filter: list[Filter] = field(default_factory=list)


@dataclass
class ListImageResponse:
    id: str = ""
    image_name: str = ""
    tag: str = ""


@dataclass
class ListVolumeRequest:
    filter: list[Filter] = field(default_factory=list)


@dataclass
class ListVolumeResponse:
    name: str = ""
    driver: Driver = Driver.DS_UNSPECIFIED
    labels: dict[str, str] = field(default_factory=dict)


@dataclass
class Plugin:
    id: str = ""
    name: str = ""
    instance_name: str = ""
    config: str = ""


@dataclass
class ListPluginsRequest:
    instance_name: str = ""


@dataclass
class ListPluginsResponse:
    plugins: list[Plugin] = field(default_factory=list)


@dataclass
class LogRequest:
    instance_name: str = ""
    follow: bool = False


@dataclass
class LogResponse:
    msg: str = ""


@dataclass
class RemoveContainerRequest:
    name: str = ""
    force: bool = False


@dataclass
class RemoveContainerResponse:
    pass


class RemoveImageCode(IntEnum):
    """Outcome of an image removal."""

    UNSPECIFIED = 0
    SUCCESS = 1
    NOT_FOUND = 2
    RUNNING = 3


@dataclass
class RemoveImageRequest:
    name: str = ""
    tag: str = ""
    force: bool = False


@dataclass
class RemoveImageResponse:
    code: RemoveImageCode = RemoveImageCode.UNSPECIFIED
    detail: str = ""


@dataclass
class RemovePluginRequest:
    instance_name: str = ""


@dataclass
class RemovePluginResponse:
    pass


@dataclass
class RemoveVolumeRequest:
    name: str = ""
    force: bool = False


@dataclass
class RemoveVolumeResponse:
    pass


@dataclass
class Port:
    internal: int = 0
    external: int = 0


class RestartPolicyKind(IntEnum):
    """When a container is restarted."""

    NONE = 0
    ALWAYS = 1
    ON_FAILURE = 2
    UNLESS_STOPPED = 3


@dataclass
class Restart:
    policy: RestartPolicyKind = RestartPolicyKind.NONE
    attempts: int = 0


@dataclass
class RunAs:
    user: str = ""
    group: str = ""


@dataclass
class Capabilities:
    add: list[str] = field(default_factory=list)
    remove: list[str] = field(default_factory=list)


@dataclass
class Limits:
    max_cpu: float = 0.0
    soft_mem_bytes: int = 0
    hard_mem_bytes: int = 0


@dataclass
class Volume:
    name: str = ""
    mount_point: str = ""
    read_only: bool = False


class DevicePermission(IntEnum):
    """Access a container is given to a device."""

    UNSPECIFIED = 0
    READ = 1
    WRITE = 2
    MKNOD = 3


@dataclass
class Device:
    src_path: str = ""
    dst_path: str = ""
    permissions: list[DevicePermission] = field(default_factory=list)


@dataclass
class StartContainerRequest:
    image_name: str = ""
    tag: str = ""
    cmd: str = ""
    instance_name: str = ""
    ports: list[Port] = field(default_factory=list)
    environment: dict[str, str] = field(default_factory=dict)
    volumes: list[Volume] = field(default_factory=list)
    devices: list[Device] = field(default_factory=list)
    network: str = ""
    cap: Capabilities | None = None
    restart: Restart | None = None
    run_as: RunAs | None = None
    labels: dict[str, str] = field(default_factory=dict)
    limits: Limits | None = None


@dataclass
class StartOK:
    instance_name: str = ""


@dataclass
class StartContainerResponse:
    start_ok: StartOK | None = None


@dataclass
class StartPluginRequest:
    name: str = ""
    instance_name: str = ""
    config: str = ""


@dataclass
class StartPluginResponse:
    instance_name: str = ""


@dataclass
class StopContainerRequest:
    instance_name: str = ""
    force: bool = False


@dataclass
class StopContainerResponse:
    pass


@dataclass
class StopPluginRequest:
    instance_name: str = ""


@dataclass
class StopPluginResponse:
    pass


@dataclass
class UpdateContainerRequest:
    instance_name: str = ""
    image_name: str = ""
    image_tag: str = ""
    params: StartContainerRequest | None = None
    is_async: bool = False


@dataclass
class UpdateOK:
    instance_name: str = ""
    is_async: bool = False


@dataclass
class UpdateContainerResponse:
    update_ok: UpdateOK | None = None


@dataclass
class LocalDriverOptions:
    mountpoint: str = ""
    options: list[str] = field(default_factory=list)


@dataclass
class CustomOptions:
    options: dict[str, str] = field(default_factory=dict)


@dataclass
class CreateVolumeRequest:
    name: str = ""
    driver: Driver = Driver.DS_UNSPECIFIED
    labels: dict[str, str] = field(default_factory=dict)
    options: LocalDriverOptions | CustomOptions | None = None

    @property
    def local_mount_options(self) -> LocalDriverOptions | None:
        """The local driver options, when those are the options set."""
        return self.options if isinstance(self.options, LocalDriverOptions) else None

    @property
    def custom_options(self) -> CustomOptions | None:
        """The custom driver options, when those are the options set."""
        return self.options if isinstance(self.options, CustomOptions) else None


@dataclass
class CreateVolumeResponse:
    name: str = ""


@dataclass
class RemoteDownload:
    path: str = ""
    protocol: str = ""
    credentials: Any = None


@dataclass
class ImageTransfer:
    name: str = ""
    tag: str = ""
    image_size: int = 0
    remote_download: RemoteDownload | None = None
    is_plugin: bool = False


@dataclass
class ImageTransferEnd:
    pass


@dataclass
class DeployRequest:
    """One message of a deploy stream: a transfer header, content bytes or the end marker."""

    request: Union[ImageTransfer, ImageTransferEnd, bytes, None] = None


@dataclass
class ImageTransferReady:
    chunk_size: int = 0


@dataclass
class ImageTransferProgress:
    bytes_received: int = 0


@dataclass
class ImageTransferSuccess:
    name: str = ""
    tag: str = ""
    image_size: int = 0


@dataclass
class DeployResponse:
    response: Union[ImageTransferReady, ImageTransferProgress, ImageTransferSuccess, None] = None