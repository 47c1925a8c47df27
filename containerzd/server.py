"""The containerz service: request handlers on top of a container manager."""

from __future__ import annotations

from collections.abc import Iterable

from . import deploy as _deploy
from . import start as _start
from .manager import ContainerManager, ManagerOptions, Streamer
from .messages import (
    CreateVolumeRequest,
    CreateVolumeResponse,
    Driver,
    Filter,
    ListContainerRequest,
    ListImageRequest,
    ListPluginsRequest,
    ListPluginsResponse,
    ListVolumeRequest,
    LogRequest,
    RemoveContainerRequest,
    RemoveContainerResponse,
    RemoveImageCode,
    RemoveImageRequest,
    RemoveImageResponse,
    RemovePluginRequest,
    RemovePluginResponse,
    RemoveVolumeRequest,
    RemoveVolumeResponse,
    StartContainerRequest,
    StartContainerResponse,
    StartPluginRequest,
    StartPluginResponse,
    StopContainerRequest,
    StopContainerResponse,
    StopPluginRequest,
    StopPluginResponse,
    UpdateContainerRequest,
    UpdateContainerResponse,
)
from .options import Option, ServerSettings, apply_options
from .status import Code, status_from_error


def _merge_filters(filters: Iterable[Filter]) -> dict[str, list[str]]:
    merged: dict[str, list[str]] = {}
    for item in filters:
        merged.setdefault(item.key, []).extend(item.value)
    return merged


class Server:
    """Handles containerz requests by delegating to a container manager."""

    def __init__(self, manager: ContainerManager, *args: Option) -> None:
        self.manager = manager
        self.settings = apply_options(ServerSettings(), *args)
        self.plugin_location = _deploy.PLUGIN_LOCATION

    def deploy(self, stream: _deploy.DeployStream) -> None:
        """Receive an image or plugin over ``stream`` and load it."""
        _deploy.deploy(
            self.manager,
            stream,
            self.settings.tmp_location,
            self.settings.chunk_size,
            self.plugin_location,
        )

    def create_volume(self, request: CreateVolumeRequest) -> CreateVolumeResponse:
        """Create a volume, defaulting to the local driver."""
        options = ManagerOptions(volume_labels=dict(request.labels))
        driver = request.driver
        if driver == Driver.DS_UNSPECIFIED:
            driver = Driver.DS_LOCAL
        elif driver == Driver.DS_LOCAL:
            options.volume_driver_options = request.local_mount_options
        elif driver == Driver.DS_CUSTOM:
            options.volume_driver_options = request.custom_options
        name = self.manager.volume_create(request.name, driver, options)
        return CreateVolumeResponse(name=name)

    def list_container(self, request: ListContainerRequest, stream: Streamer) -> None:
        """Stream the containers that match the request."""
        options = ManagerOptions(filter=_merge_filters(request.filter))
        self.manager.container_list(request.all, request.limit, stream, options)

    def list_image(self, request: ListImageRequest, stream: Streamer) -> None:
        """Stream the images that match the request, regardless of state."""
        options = ManagerOptions(filter=_merge_filters(request.filter))
        self.manager.image_list(True, request.limit, stream, options)

    def list_plugins(self, request: ListPluginsRequest) -> ListPluginsResponse:
        """List the plugins on the target."""
        return self.manager.plugin_list(request.instance_name)

    def list_volume(self, request: ListVolumeRequest, stream: Streamer) -> None:
        """Stream the volumes that match the request."""
        options = ManagerOptions(filter=_merge_filters(request.filter))
        self.manager.volume_list(stream, options)

    def log(self, request: LogRequest, stream: Streamer) -> None:
        """Stream a container's logs, following them if asked."""
        options = ManagerOptions(follow=request.follow)
        self.manager.container_logs(request.instance_name, stream, options)

    def remove_container(self, request: RemoveContainerRequest) -> RemoveContainerResponse:
        """Remove a container."""
        self.manager.container_remove(request.name, ManagerOptions(force=request.force))
        return RemoveContainerResponse()

    def remove_image(self, request: RemoveImageRequest) -> RemoveImageResponse:
        """Remove an image, reporting not-found and in-use images in the response."""
        try:
            self.manager.image_remove(
                request.name, request.tag, ManagerOptions(force=request.force)
            )
        except Exception as err:
            status = status_from_error(err)
            if status is None:
                return RemoveImageResponse(
                    code=RemoveImageCode.RUNNING,
                    detail=f"unknown containerz state: {err}",
                )
            if status.code == Code.NOT_FOUND:
                return RemoveImageResponse(code=RemoveImageCode.NOT_FOUND, detail=status.message)
            if status.code == Code.UNAVAILABLE:
                return RemoveImageResponse(code=RemoveImageCode.RUNNING, detail=status.message)
            raise
        return RemoveImageResponse(code=RemoveImageCode.SUCCESS)

    def remove_plugin(self, request: RemovePluginRequest) -> RemovePluginResponse:
        """Remove a plugin."""
        try:
            self.manager.plugin_remove(request.instance_name)
        except Exception as err:
            raise RuntimeError(f"unable to remove plugin: {err}") from err
        return RemovePluginResponse()

    def remove_volume(self, request: RemoveVolumeRequest) -> RemoveVolumeResponse:
        """Remove a volume."""
        self.manager.volume_remove(request.name, ManagerOptions(force=request.force))
        return RemoveVolumeResponse()

    def start_container(self, request: StartContainerRequest) -> StartContainerResponse:
        """Start a container."""
        return _start.start_container(self.manager, request)

    def start_plugin(self, request: StartPluginRequest) -> StartPluginResponse:
        """Start a plugin."""
        try:
            self.manager.plugin_start(request.name, request.instance_name, request.config)
        except Exception as err:
            raise RuntimeError(f"unable to start plugin: {err}") from err
        return StartPluginResponse(instance_name=request.instance_name)

    def stop_container(self, request: StopContainerRequest) -> StopContainerResponse:
        """Stop a container, killing it if forced."""
        self.manager.container_stop(request.instance_name, ManagerOptions(force=request.force))
        return StopContainerResponse()

    def stop_plugin(self, request: StopPluginRequest) -> StopPluginResponse:
        """Stop a plugin."""
        try:
            self.manager.plugin_stop(request.instance_name)
        except Exception as err:
            raise RuntimeError(f"unable to stop plugin: {err}") from err
        return StopPluginResponse()

    def update_container(self, request: UpdateContainerRequest) -> UpdateContainerResponse:
        """Update a container to another image."""
        return _start.update_container(self.manager, request)