"""
Transfer Session (sender side)

Sends one local file to a listening receiver.

Flow:
1. Open the source file and measure it
2. Connect to the receiver
3. Write the header
4. Write the file in bounded chunks, one write in flight at a time
5. Close the connection; the receiver treats end-of-stream as the
   end of the payload

Every failure is fatal to the session: the connection and the file
are closed and the error is raised to the caller. There is no retry
and no resumption.
"""

import asyncio
import logging
import os
import socket
from enum import Enum
from pathlib import Path
from typing import Optional, Union

import aiofiles

from .errors import (
    OpenFileError, ResolveError, ConnectError, HeaderWriteError,
    BufferReadError, BufferWriteError, HeaderMalformed,
)
from .header import Header, CHUNK_SIZE

logger = logging.getLogger(__name__)


class SenderState(Enum):
    """Sender state machine."""
    INIT = "INIT"
    CONNECTING = "CONNECTING"
    WRITING_HEADER = "WRITING_HEADER"
    WRITING_BODY = "WRITING_BODY"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class TransferSession:
    """
    A single-shot file upload over one TCP connection.

    Usage:
        session = TransferSession('10.0.0.5', 8469, Path('report.pdf'))
        await session.run()
    """

    def __init__(self, host: str, port: int, path: Union[str, Path],
                 chunk_size: int = CHUNK_SIZE):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")

        self.host = host
        self.port = port
        self.path = Path(path)
        self.chunk_size = chunk_size

        self.state = SenderState.INIT
        self.header: Optional[Header] = None

        self.bytes_sent = 0
        self.chunks_sent = 0

        self._header_bytes = b''
        self._file = None
        self._writer: Optional[asyncio.StreamWriter] = None

    async def run(self) -> int:
        """
        Perform the transfer.

        Returns:
            Number of payload bytes sent

        Raises:
            SendError: on any failure; the session is then FAILED
        """
        try:
            await self._open_file()
            await self._connect()
            await self._write_header()
            await self._write_body()
        except BaseException:
            self.state = SenderState.FAILED
            raise
        finally:
            await self._close()

        self.state = SenderState.COMPLETED
        logger.info(f"Sent {self.header.file_name} "
                    f"({self.bytes_sent:,} bytes, {self.chunks_sent} chunks) "
                    f"to {self.host}:{self.port}")
        return self.bytes_sent

    # === States ===

    async def _open_file(self):
        try:
            self._file = await aiofiles.open(self.path, 'rb')
            # Size is fixed at open time; the header promises exactly this many bytes
            byte_count = os.fstat(self._file.fileno()).st_size
            await self._file.seek(0)
        except OSError as e:
            raise OpenFileError(f"Failed to open {self.path}: {e}") from e

        self.header = Header(file_name=self.path.name, byte_count=byte_count)
        # Fails before connecting if the name cannot be framed
        try:
            self._header_bytes = self.header.encode()
        except HeaderMalformed as e:
            raise OpenFileError(f"Cannot send {self.path}: {e}") from e
        logger.debug(f"Opened {self.path} ({byte_count:,} bytes)")

    async def _connect(self):
        self.state = SenderState.CONNECTING
        logger.debug(f"Connecting to {self.host}:{self.port}")

        try:
            _, self._writer = await asyncio.open_connection(self.host, self.port)
        except socket.gaierror as e:
            raise ResolveError(f"Failed to resolve {self.host}:{self.port}: {e}") from e
        except OSError as e:
            raise ConnectError(f"Failed to connect to {self.host}:{self.port}: {e}") from e

    async def _write_header(self):
        self.state = SenderState.WRITING_HEADER
        data = self._header_bytes

        try:
            self._writer.write(data)
            await self._writer.drain()
        except OSError as e:
            raise HeaderWriteError(f"Failed to write header: {e}") from e

        logger.debug(f"Header sent: {data!r}")

    async def _write_body(self):
        self.state = SenderState.WRITING_BODY
        remaining = self.header.byte_count

        while remaining > 0:
            try:
                chunk = await self._file.read(min(self.chunk_size, remaining))
            except OSError as e:
                raise BufferReadError(f"Failed to read {self.path}: {e}") from e

            if not chunk:
                # The file shrank after it was measured
                raise BufferReadError(
                    f"Unexpected end of {self.path} with {remaining:,} bytes left"
                )

            try:
                self._writer.write(chunk)
                await self._writer.drain()
            except OSError as e:
                raise BufferWriteError(f"Failed to write buffer, error: {e}") from e

            remaining -= len(chunk)
            self.bytes_sent += len(chunk)
            self.chunks_sent += 1

    async def _close(self):
        if self._writer is not None:
            writer, self._writer = self._writer, None
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as e:
                logger.debug(f"Error while closing connection: {e}")

        if self._file is not None:
            f, self._file = self._file, None
            await f.close()


async def send_file(host: str, port: int, path: Union[str, Path],
                    chunk_size: int = CHUNK_SIZE) -> int:
    """
    Send a file to a receiver.

    Returns:
        Number of payload bytes sent
    """
    session = TransferSession(host, port, path, chunk_size=chunk_size)
    return await session.run()
