"""Shared helpers for transfer tests."""

import asyncio
from typing import List, Optional

import pytest


class FakeWriter:
    """Stands in for the StreamWriter of an accepted connection."""

    def __init__(self, peer=('127.0.0.1', 50000)):
        self.peer = peer
        self.closed = False

    def get_extra_info(self, name, default=None):
        if name == 'peername':
            return self.peer
        return default

    def close(self):
        self.closed = True

    async def wait_closed(self):
        pass


class ScriptedReader:
    """Returns the scripted items from read() in order; exceptions are raised."""

    def __init__(self, items):
        self.items = list(items)

    async def read(self, n=-1):
        if not self.items:
            return b''
        item = self.items.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class CaptureServer:
    """Collects everything each client sends until it closes."""

    def __init__(self):
        self.server: Optional[asyncio.AbstractServer] = None
        self.received: List[bytes] = []
        self.done = asyncio.Event()

    @property
    def port(self) -> int:
        return self.server.sockets[0].getsockname()[1]

    async def __aenter__(self):
        self.server = await asyncio.start_server(self._handle, '127.0.0.1', 0)
        return self

    async def __aexit__(self, *exc):
        self.server.close()
        await self.server.wait_closed()

    async def _handle(self, reader, writer):
        self.received.append(await reader.read())
        writer.close()
        self.done.set()


async def wait_for_sessions(listener, count: int, timeout: float = 5.0):
    """Wait until the listener has finished `count` sessions."""
    async def poll():
        while listener.sessions_succeeded + listener.sessions_failed < count:
            await asyncio.sleep(0.01)
    await asyncio.wait_for(poll(), timeout)


@pytest.fixture
def make_file(tmp_path):
    """Create a source file with deterministic content."""
    src_dir = tmp_path / 'src'
    src_dir.mkdir()

    def make(name: str, size: int):
        path = src_dir / name
        path.write_bytes(bytes(i % 251 for i in range(size)))
        return path

    return make


class FailingWriter:
    """A connection whose drain() fails after `ok_drains` successful ones."""

    def __init__(self, ok_drains: int = 0):
        self.ok_drains = ok_drains
        self.written: List[bytes] = []
        self.closed = False

    def write(self, data):
        self.written.append(data)

    async def drain(self):
        if self.ok_drains == 0:
            raise ConnectionResetError('Connection reset by peer')
        self.ok_drains -= 1

    def close(self):
        self.closed = True

    async def wait_closed(self):
        pass
