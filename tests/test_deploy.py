from collections import deque

import pytest

from containerzd.deploy import (
    ChunkWriter,
    check_disk_space,
    deploy,
    disk_space,
    move_file,
)
from containerzd.messages import (
    DeployRequest,
    DeployResponse,
    ImageTransfer,
    ImageTransferEnd,
    ImageTransferProgress,
    ImageTransferReady,
    ImageTransferSuccess,
    RemoteDownload,
)
from containerzd.status import Code, StatusError


class FakeManager:
    def __init__(self):
        self.image = ""
        self.tag = ""
        self.contents = b""
        self.pull_options = None
        self.push_options = None

    def image_pull(self, image, tag, options):
        self.image = image
        self.tag = tag
        self.pull_options = options

    def image_push(self, file, options):
        self.contents = file.read()
        self.push_options = options
        return "", ""


class FakeStream:
    def __init__(self, requests, fail_send=False):
        self._requests = deque(requests)
        self.responses = []
        self.fail_send = fail_send

    def recv(self):
        if not self._requests:
            raise EOFError
        return self._requests.popleft()

    def send(self, message):
        if self.fail_send:
            raise ConnectionError("gone")
        self.responses.append(message)


def transfer(**kwargs):
    return DeployRequest(ImageTransfer(**kwargs))


def content(data):
    return DeployRequest(data)


END = DeployRequest(ImageTransferEnd())


def run(tmp_path, requests, chunk_size=5_000_000, **stream_kwargs):
    upload = tmp_path / "upload"
    upload.mkdir(exist_ok=True)
    manager = FakeManager()
    stream = FakeStream(requests, **stream_kwargs)
    error = None
    try:
        deploy(manager, stream, str(upload), chunk_size, str(tmp_path / "plugins"))
    except StatusError as err:
        error = err
    return manager, stream, error


def test_invalid_protocol(tmp_path):
    _, stream, error = run(tmp_path, [END])
    assert error == StatusError(Code.UNAVAILABLE, "must send send a TransferImage message first")
    assert stream.responses == []


def test_content_first_is_invalid(tmp_path):
    _, _, error = run(tmp_path, [content(b"data")])
    assert error.code == Code.UNAVAILABLE


def test_gigantic_contents(tmp_path):
    _, _, error = run(
        tmp_path, [transfer(name="some-image", tag="some-tag", image_size=10**16)]
    )
    assert error == StatusError(Code.RESOURCE_EXHAUSTED, "not enough space to store image")


def test_remote_download(tmp_path):
    manager, stream, error = run(
        tmp_path,
        [transfer(name="some-image", tag="some-tag", remote_download=RemoteDownload())],
    )
    assert error is None
    assert (manager.image, manager.tag) == ("some-image", "some-tag")
    assert manager.pull_options.stream is stream
    assert stream.responses == [
        DeployResponse(ImageTransferSuccess(name="some-image", tag="some-tag"))
    ]


def test_too_much_data_sent(tmp_path):
    _, stream, error = run(
        tmp_path,
        [
            transfer(name="some-image", tag="some-tag", image_size=16),
            content(b"exactly "),
            content(b"16 bytes"),
            content(b"16 bytes"),
        ],
        chunk_size=8,
    )
    assert error == StatusError(Code.INVALID_ARGUMENT, "too much data received")
    assert stream.responses == [
        DeployResponse(ImageTransferReady(chunk_size=8)),
        DeployResponse(ImageTransferProgress(bytes_received=8)),
        DeployResponse(ImageTransferProgress(bytes_received=16)),
    ]


def test_successful_image_transfer(tmp_path):
    manager, stream, error = run(
        tmp_path,
        [
            transfer(name="some-image", tag="some-tag", image_size=16),
            content(b"exactly "),
            content(b"16 bytes"),
            END,
        ],
        chunk_size=8,
    )
    assert error is None
    assert manager.contents == b"exactly 16 bytes"
    assert manager.push_options.target_name == "some-image"
    assert manager.push_options.target_tag == "some-tag"
    assert stream.responses == [
        DeployResponse(ImageTransferReady(chunk_size=8)),
        DeployResponse(ImageTransferProgress(bytes_received=8)),
        DeployResponse(ImageTransferProgress(bytes_received=16)),
        DeployResponse(ImageTransferSuccess(image_size=16)),
    ]
    assert list((tmp_path / "upload").iterdir()) == []


def test_successful_plugin_transfer(tmp_path):
    manager, stream, error = run(
        tmp_path,
        [
            transfer(name="some-image", tag="some-tag", image_size=16, is_plugin=True),
            content(b"exactly "),
            content(b"16 bytes"),
            END,
        ],
        chunk_size=8,
    )
    assert error is None
    assert manager.contents == b""
    assert manager.image == ""
    assert stream.responses[-1] == DeployResponse(
        ImageTransferSuccess(name="some-image", image_size=16)
    )
    assert (tmp_path / "plugins" / "some-image.tar").read_bytes() == b"exactly 16 bytes"
    assert list((tmp_path / "upload").iterdir()) == []


def test_empty_stream_returns_quietly(tmp_path):
    manager, stream, error = run(tmp_path, [])
    assert (error, stream.responses, manager.image) == (None, [], "")


def test_eof_during_transfer(tmp_path):
    _, _, error = run(tmp_path, [transfer(name="img", image_size=16), content(b"abc")])
    assert error == StatusError(Code.UNKNOWN, "unexpected EOF while receiving image: EOF")


def test_unknown_first_request(tmp_path):
    _, _, error = run(tmp_path, [DeployRequest(None)])
    assert error.code == Code.INVALID_ARGUMENT


def test_unexpected_message_during_transfer(tmp_path):
    _, _, error = run(tmp_path, [transfer(name="img", image_size=16), transfer(name="img")])
    assert error.code == Code.INTERNAL


def test_client_not_ready(tmp_path):
    _, _, error = run(tmp_path, [transfer(name="img", image_size=16)], fail_send=True)
    assert error.code == Code.UNAVAILABLE
    assert error.message.startswith("client is not ready")


def test_chunk_writer_counts_and_cleans_up(tmp_path):
    with ChunkWriter(str(tmp_path), 4) as writer:
        assert writer.write(b"hello") == 5
        writer.write(b"!")
        assert writer.size == 6
        writer.file.flush()
        with open(writer.name, "rb") as handle:
            assert handle.read() == b"hello!"
    assert list(tmp_path.iterdir()) == []


def test_chunk_writer_rejects_bad_chunk_size(tmp_path):
    with pytest.raises(ValueError):
        ChunkWriter(str(tmp_path), 0)


def test_disk_space_is_positive(tmp_path):
    assert disk_space(str(tmp_path)) > 0


def test_check_disk_space_missing_location(tmp_path):
    with pytest.raises(StatusError) as excinfo:
        check_disk_space(str(tmp_path / "missing"), 1)
    assert excinfo.value.code == Code.INTERNAL


def test_move_file(tmp_path):
    source = tmp_path / "a.bin"
    source.write_bytes(b"payload")
    dest = tmp_path / "nested" / "dir" / "b.bin"
    move_file(str(source), str(dest))
    assert dest.read_bytes() == b"payload"
    assert not source.exists()


def test_move_file_missing_source(tmp_path):
    with pytest.raises(OSError, match="unable to open source file"):
        move_file(str(tmp_path / "nope"), str(tmp_path / "out"))