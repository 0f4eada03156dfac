"""
Connection Session (receiver side)

Design Decision: Reading the Header
===================================

Options Considered:
1. StreamReader.readuntil(DELIMITER)
   - One call, the reader keeps any over-read bytes
   - Limit is tied to the reader's buffer limit

2. Chunked reads into our own buffer
   - We control the header window explicitly
   - Bytes read past the delimiter must be handed to the payload

Decision: Chunked reads
- The header window is bounded by max_header_size, so a peer that
  never sends a delimiter cannot grow the buffer without limit
- Residual payload bytes from the header read are written to the
  output file first and subtracted from the remaining count

Session Flow:
```
AWAITING_HEADER --header ok--> READING_BODY --EOF at 0 left--> SUCCEEDED
       |                             |
       +---------- any error --------+-----------------------> FAILED
```

Errors never escape run(): they are logged and recorded on the
returned SessionResult.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple, Union

import aiofiles

from .errors import (
    ReceiveError, HeaderReadError, OutputOpenError, OutputWriteError,
    BodyReadError, IncompleteTransfer, UnexpectedData,
)
from .header import Header, CHUNK_SIZE, MAX_HEADER_SIZE, scan, decode

logger = logging.getLogger(__name__)


class ReceiverState(Enum):
    """Receiver state machine."""
    AWAITING_HEADER = "AWAITING_HEADER"
    READING_BODY = "READING_BODY"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


@dataclass
class SessionResult:
    """Outcome of one receiving session."""
    peer: Optional[Tuple[str, int]]
    file_name: Optional[str] = None
    byte_count: int = 0
    bytes_received: int = 0
    error: Optional[ReceiveError] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


def check_sizes(chunk_size: int, max_header_size: int):
    """Reject buffer sizes that would make every read return nothing."""
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if max_header_size <= 0:
        raise ValueError(f"max_header_size must be positive, got {max_header_size}")


def resolve_output_path(output_dir: Path, file_name: str) -> Path:
    """
    Map a peer-supplied file name to a path inside output_dir.

    Raises:
        OutputOpenError: if the name is not a single plain path segment
    """
    if ('/' in file_name or '\\' in file_name
            or file_name in ('.', '..') or '\0' in file_name):
        raise OutputOpenError(f"Refusing unsafe file name: {file_name!r}")
    return output_dir / file_name


class ConnectionSession:
    """
    Receives one file over an accepted connection.

    The session owns the connection exclusively and closes it when it
    reaches a terminal state.
    """

    def __init__(self, reader: asyncio.StreamReader,
                 writer: asyncio.StreamWriter,
                 output_dir: Union[str, Path] = '.',
                 chunk_size: int = CHUNK_SIZE,
                 max_header_size: int = MAX_HEADER_SIZE):
        check_sizes(chunk_size, max_header_size)

        self.reader = reader
        self.writer = writer
        self.output_dir = Path(output_dir)
        self.chunk_size = chunk_size
        self.max_header_size = max_header_size

        self.state = ReceiverState.AWAITING_HEADER
        self.header: Optional[Header] = None
        self.output_path: Optional[Path] = None

        self.bytes_remaining = 0
        self.bytes_received = 0
        self.chunks_received = 0

        self._file = None

    @property
    def peer(self) -> Optional[Tuple[str, int]]:
        """Remote peer address."""
        return self.writer.get_extra_info('peername')

    async def run(self) -> SessionResult:
        """Receive the file and report the outcome."""
        peer = self.peer
        result = SessionResult(peer=peer)

        try:
            residual = await self._read_header()
            result.file_name = self.header.file_name
            result.byte_count = self.header.byte_count

            await self._open_output()
            await self._write_residual(residual)
            await self._read_body()

            self.state = ReceiverState.SUCCEEDED
            logger.info(f"EOF, success: received {self.header.file_name} "
                        f"({self.bytes_received:,} bytes) from {peer}")

        except ReceiveError as e:
            self.state = ReceiverState.FAILED
            result.error = e
            logger.warning(f"Session from {peer} failed: {e}")

        finally:
            result.bytes_received = self.bytes_received
            await self._close()

        return result

    # === States ===

    async def _read_header(self) -> bytes:
        """
        Buffer incoming bytes until a complete header is present.

        Returns:
            Payload bytes that arrived in the same reads as the header
        """
        buffer = bytearray()

        while not scan(buffer, self.max_header_size):
            try:
                data = await self.reader.read(self.chunk_size)
            except OSError as e:
                raise HeaderReadError(f"Failed to read header, error: {e}") from e

            if not data:
                raise HeaderReadError(
                    f"Connection closed after {len(buffer)} header bytes"
                )
            buffer.extend(data)

        self.header, residual = decode(buffer, self.max_header_size)
        self.bytes_remaining = self.header.byte_count

        logger.debug(f"Header from {self.peer}: {self.header.file_name} "
                     f"({self.header.byte_count:,} bytes)")
        return residual

    async def _open_output(self):
        self.output_path = resolve_output_path(self.output_dir, self.header.file_name)

        try:
            self._file = await aiofiles.open(self.output_path, 'wb')
        except OSError as e:
            raise OutputOpenError(f"Failed to open {self.output_path}: {e}") from e

    async def _write_residual(self, residual: bytes):
        if not residual:
            return

        excess = len(residual) - self.bytes_remaining
        if self.bytes_remaining > 0:
            await self._write(residual[:self.bytes_remaining])

        if excess > 0:
            raise UnexpectedData(f"Peer sent {excess} bytes beyond the announced "
                                 f"{self.header.byte_count}")

    async def _read_body(self):
        self.state = ReceiverState.READING_BODY

        while True:
            # Once everything has arrived, a one-byte read confirms end-of-stream
            size = min(self.bytes_remaining, self.chunk_size) or 1

            try:
                data = await self.reader.read(size)
            except OSError as e:
                raise BodyReadError(f"Failed to read buffer, error: {e}") from e

            if not data:
                break

            if self.bytes_remaining == 0:
                raise UnexpectedData(f"Peer sent more than the announced "
                                     f"{self.header.byte_count} bytes")

            await self._write(data)

        if self.bytes_received != self.header.byte_count:
            raise IncompleteTransfer(self.header.byte_count, self.bytes_received)

    # === Helpers ===

    async def _write(self, data: bytes):
        try:
            await self._file.write(data)
        except OSError as e:
            raise OutputWriteError(f"Failed to write {self.output_path}: {e}") from e

        self.bytes_remaining -= len(data)
        self.bytes_received += len(data)
        self.chunks_received += 1

    async def _close(self):
        if self._file is not None:
            f, self._file = self._file, None
            try:
                await f.close()
            except OSError as e:
                logger.error(f"Failed to close {self.output_path}: {e}")

        self.writer.close()
        try:
            await self.writer.wait_closed()
        except OSError as e:
            logger.debug(f"Error while closing connection from {self.peer}: {e}")
