# containerzd

`containerzd` holds the request handlers of a container management service
for network devices. It can receive a container image or plugin in chunks, or
ask for an image to be pulled from a registry. It starts, stops, updates and
removes containers, creates and removes volumes, starts, stops and removes
plugins, and streams logs and listings back to the caller.

The handlers do not talk to a container runtime themselves. You give them an
object that implements the `ContainerManager` protocol from
`containerzd.manager`, and that object does the real work. Each handler turns
a request message into a call on the manager and builds the response message
from what the manager returns.

## Installation

```
pip install containerzd
```

To run the test suite, install the `test` extra and run `pytest`:

```
pip install "containerzd[test]"
pytest
```

## Usage

```python
from containerzd.server import Server
from containerzd.options import with_addr, with_chunk_size, with_temp_location
from containerzd.messages import Port, StartContainerRequest

server = Server(
    my_manager,                    # any object implementing ContainerManager
    with_addr("localhost:0"),
    with_temp_location("/var/tmp"),
    with_chunk_size(5_000_000),
)

response = server.start_container(
    StartContainerRequest(
        image_name="some-image",
        tag="some-tag",
        cmd="some-cmd",
        ports=[Port(internal=8080, external=80)],
    )
)
print(response.start_ok.instance_name)
```

The streaming handlers `list_container`, `list_image`, `list_volume` and
`log` take a second argument. It is any object with a `send(message)` method
(the `Streamer` protocol), and the manager sends its results to it.

`Server.deploy` takes a `DeployStream`. This is an object with `recv()`, which
returns the next `DeployRequest` and raises `EOFError` when the client has
finished, and with `send(response)`. The first request must carry an
`ImageTransfer`:

- If the transfer has a `remote_download`, the manager's `image_pull` is
  called.
- Otherwise the service answers with `ImageTransferReady` and receives the
  image as `bytes` requests. It answers each chunk with
  `ImageTransferProgress` and stops at an `ImageTransferEnd`.
- At the end, an image is handed to the manager's `image_push`. A plugin
  (`is_plugin=True`) is moved to `<plugin_location>/<name>.tar`. The default
  location is `/plugins`, and you can change it through
  `server.plugin_location`.

The upload is first written to a temporary file in the temp location. Before
the transfer starts, the free space there is checked with `os.statvfs`.

### Modules

- `containerzd.server`: the `Server` class with all request handlers.
- `containerzd.messages`: request and response dataclasses and their enums.
- `containerzd.manager`: the `ContainerManager` and `Streamer` protocols and
  the `ManagerOptions` passed along with each manager call.
- `containerzd.options`: `ServerSettings` (`addr`, `tmp_location`,
  `chunk_size`), `with_addr`, `with_temp_location`, `with_chunk_size` and
  `apply_options`. The defaults are `":9999"`, `"/tmp"` and 5,000,000 bytes.
- `containerzd.deploy`: `deploy`, `ChunkWriter`, `check_disk_space`,
  `disk_space` and `move_file`.
- `containerzd.start`: `start_container`, `update_container` and
  `options_from_start_request`.
- `containerzd.status`: `Code`, `StatusError` and `status_from_error`.

### Errors

The handlers raise `StatusError` with a `Code` in these cases:

- A deploy whose first message is content or an end marker gets
  `UNAVAILABLE`. A first message of any other type gets `INVALID_ARGUMENT`.
- An image larger than the free disk space gets `RESOURCE_EXHAUSTED`.
- A transfer that sends more data than it announced gets `INVALID_ARGUMENT`.
- A stream that ends before the end marker gets `UNKNOWN`.
- An update without start parameters gets `FAILED_PRECONDITION`.

An error raised by the manager passes through unchanged, with these
exceptions:

- `start_plugin`, `stop_plugin` and `remove_plugin` wrap it in a
  `RuntimeError` ("unable to start plugin: ..." and so on).
- `remove_image` does not raise for a `NOT_FOUND` or `UNAVAILABLE` status.
  It reports them in the response's `code` field instead, as `NOT_FOUND` and
  `RUNNING`. An error that carries no status is also reported as `RUNNING`.

## What this package does not do

- It does not listen on a network address or speak an RPC protocol. The
  `addr` setting is stored but not used. You wire `Server` into your own
  transport.
- It has no container runtime backend. You must supply the
  `ContainerManager`.
- It provides no command-line program.