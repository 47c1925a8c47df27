"""Starting and updating containers."""

from __future__ import annotations

from .manager import ContainerManager, ManagerOptions
from .messages import (
    StartContainerRequest,
    StartContainerResponse,
    StartOK,
    UpdateContainerRequest,
    UpdateContainerResponse,
    UpdateOK,
)
from .status import Code, StatusError


def options_from_start_request(request: StartContainerRequest) -> ManagerOptions:
    """Build the manager options a start request asks for."""
    options = ManagerOptions()
    if request.ports:
        options.port_mapping = {port.internal: port.external for port in request.ports}
    if request.network:
        options.network = request.network
    if request.restart is not None:
        options.restart_policy = request.restart
    if request.run_as is not None:
        options.run_as = request.run_as
    if request.cap is not None:
        options.capabilities = request.cap
    if request.limits is not None:
        if request.limits.max_cpu:
            options.cpu = request.limits.max_cpu
        if request.limits.soft_mem_bytes:
            options.soft_memory = request.limits.soft_mem_bytes
        if request.limits.hard_mem_bytes:
            options.hard_memory = request.limits.hard_mem_bytes

    options.labels = dict(request.labels)
    options.env_mapping = dict(request.environment)
    options.instance_name = request.instance_name
    options.volumes = list(request.volumes)
    options.devices = list(request.devices)
    return options


def start_container(
    manager: ContainerManager, request: StartContainerRequest
) -> StartContainerResponse:
    """Start a container and return the instance name the manager gave it."""
    options = options_from_start_request(request)
    instance = manager.container_start(request.image_name, request.tag, request.cmd, options)
    return StartContainerResponse(start_ok=StartOK(instance_name=instance))


def update_container(
    manager: ContainerManager, request: UpdateContainerRequest
) -> UpdateContainerResponse:
    """Update a container to the image given in the request's start parameters."""
    params = request.params
    if params is None:
        raise StatusError(
            Code.FAILED_PRECONDITION,
            "expected request to contain populated params, yet was nil",
        )
    options = options_from_start_request(params)
    instance = manager.container_update(
        request.instance_name,
        params.image_name,
        params.tag,
        params.cmd,
        request.is_async,
        options,
    )
    return UpdateContainerResponse(
        update_ok=UpdateOK(instance_name=instance, is_async=request.is_async)
    )