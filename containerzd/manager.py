"""The interface the server expects from a container runtime backend."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, BinaryIO, Protocol, runtime_checkable

from .messages import (
    Capabilities,
    CustomOptions,
    Device,
    Driver,
    ListPluginsResponse,
    LocalDriverOptions,
    Restart,
    RunAs,
    Volume,
)


@dataclass
class ManagerOptions:
    """Optional settings passed along with a manager operation."""

    force: bool = False
    follow: bool = False
    filter: dict[str, list[str]] = field(default_factory=dict)
    stream: Any = None
    registry_auth: Any = None
    target_name: str = ""
    target_tag: str = ""
    port_mapping: dict[int, int] = field(default_factory=dict)
    env_mapping: dict[str, str] = field(default_factory=dict)
    instance_name: str = ""
    volumes: list[Volume] = field(default_factory=list)
    devices: list[Device] = field(default_factory=list)
    network: str = ""
    capabilities: Capabilities | None = None
    run_as: RunAs | None = None
    restart_policy: Restart | None = None
    labels: dict[str, str] = field(default_factory=dict)
    cpu: float = 0.0
    hard_memory: int = 0
    soft_memory: int = 0
    volume_driver_options: LocalDriverOptions | CustomOptions | None = None
    volume_labels: dict[str, str] = field(default_factory=dict)


@runtime_checkable
class Streamer(Protocol):
    """Anything that messages can be sent back to the client through."""

    def send(self, message: Any) -> None:
        """Send one message to the client."""


@runtime_checkable
class ContainerManager(Protocol):
    """Operations a container runtime backend offers to the server."""

    def container_list(self, all: bool, limit: int, stream: Streamer, options: ManagerOptions) -> None:
        """Stream the containers, all of them regardless of state if ``all``, at most ``limit``."""

    def image_pull(self, image: str, tag: str, options: ManagerOptions) -> None:
        """Pull an image from a registry."""

    def image_push(self, file: BinaryIO, options: ManagerOptions) -> tuple[str, str]:
        """Load an image tarball; return the image name and tag loaded."""

    def container_remove(self, instance: str, options: ManagerOptions) -> None:
        """Remove a container that is not running."""

    def container_start(self, image: str, tag: str, cmd: str, options: ManagerOptions) -> str:
        """Start a container from an image and tag; return its instance name."""

    def container_stop(self, instance: str, options: ManagerOptions) -> None:
        """Stop a container, killing it if ``options.force``."""

    def container_update(
        self, instance: str, image: str, tag: str, cmd: str, is_async: bool, options: ManagerOptions
    ) -> str:
        """Update a container to another image; return its instance name."""

    def container_logs(self, instance: str, stream: Streamer, options: ManagerOptions) -> None:
        """Stream a container's logs, following them if ``options.follow``."""

    def image_list(self, all: bool, limit: int, stream: Streamer, options: ManagerOptions) -> None:
        """Stream the images, at most ``limit``."""

    def image_remove(self, image: str, tag: str, options: ManagerOptions) -> None:
        """Remove an image not linked to any running container."""

    def plugin_list(self, instance: str) -> ListPluginsResponse:
        """List the plugins, or the one named ``instance``."""

    def plugin_remove(self, instance: str) -> None:
        """Remove a plugin."""

    def plugin_start(self, name: str, instance: str, config: str) -> None:
        """Start a plugin under an instance name with a configuration."""

    def plugin_stop(self, instance: str) -> None:
        """Stop a plugin."""

    def volume_list(self, stream: Streamer, options: ManagerOptions) -> None:
        """Stream the volumes."""

    def volume_create(self, name: str, driver: Driver, options: ManagerOptions) -> str:
        """Create a volume; return its name."""

    def volume_remove(self, name: str, options: ManagerOptions) -> None:
        """Remove a volume."""