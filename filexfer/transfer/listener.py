"""
Listener

Accepts incoming connections and hands each one to its own
ConnectionSession. asyncio.start_server keeps accepting while sessions
run, so a slow or failing session never blocks new connections.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Set, Union

from .errors import BindError
from .header import CHUNK_SIZE, MAX_HEADER_SIZE
from .receiver import ConnectionSession, check_sizes

logger = logging.getLogger(__name__)


class Listener:
    """
    TCP server receiving files into an output directory.

    Runs until the process is terminated; only binding can fail fatally.
    """

    def __init__(self, port: int, host: str = '0.0.0.0',
                 output_dir: Union[str, Path] = '.',
                 chunk_size: int = CHUNK_SIZE,
                 max_header_size: int = MAX_HEADER_SIZE):
        check_sizes(chunk_size, max_header_size)

        self.host = host
        self._requested_port = port
        self.output_dir = Path(output_dir)
        self.chunk_size = chunk_size
        self.max_header_size = max_header_size

        self.server: Optional[asyncio.AbstractServer] = None
        self._sessions: Set[ConnectionSession] = set()
        self._tasks: Set[asyncio.Task] = set()

        # Statistics
        self.sessions_accepted = 0
        self.sessions_succeeded = 0
        self.sessions_failed = 0
        self.bytes_received = 0

    @property
    def port(self) -> int:
        """Bound port (the requested one until start() has run)."""
        if self.server and self.server.sockets:
            return self.server.sockets[0].getsockname()[1]
        return self._requested_port

    @property
    def active_sessions(self) -> int:
        return len(self._sessions)

    async def start(self):
        """
        Bind and start accepting.

        Raises:
            BindError: if the port is unavailable
        """
        try:
            self.server = await asyncio.start_server(
                self._handle_connection,
                self.host,
                self._requested_port
            )
        except OSError as e:
            raise BindError(f"Failed to bind {self.host}:{self._requested_port}: {e}") from e

        addr = self.server.sockets[0].getsockname()
        logger.info(f"Listening on {addr}, writing files to {self.output_dir}")

    async def serve_forever(self):
        """Accept connections until cancelled."""
        if self.server is None:
            await self.start()
        await self.server.serve_forever()

    async def stop(self):
        """Stop accepting and abandon in-progress sessions."""
        server, self.server = self.server, None
        if server:
            server.close()

        # wait_closed() also waits for open connections, so end sessions first
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        if server:
            await server.wait_closed()

        logger.info(f"Listener stopped. {self.sessions_succeeded} of "
                    f"{self.sessions_accepted} transfers succeeded, "
                    f"{self.bytes_received:,} bytes received")

    async def _handle_connection(self, reader: asyncio.StreamReader,
                                 writer: asyncio.StreamWriter):
        """Run one session on an accepted connection."""
        session = ConnectionSession(
            reader, writer,
            output_dir=self.output_dir,
            chunk_size=self.chunk_size,
            max_header_size=self.max_header_size,
        )
        self.sessions_accepted += 1
        self._sessions.add(session)

        task = asyncio.current_task()
        if task is not None:
            self._tasks.add(task)

        logger.debug(f"New connection from {session.peer}")

        try:
            result = await session.run()
        finally:
            self._sessions.discard(session)
            self._tasks.discard(task)

        self.bytes_received += result.bytes_received
        if result.succeeded:
            self.sessions_succeeded += 1
        else:
            self.sessions_failed += 1

    def get_stats(self) -> dict:
        """Get listener statistics."""
        return {
            'port': self.port,
            'active_sessions': self.active_sessions,
            'sessions_accepted': self.sessions_accepted,
            'sessions_succeeded': self.sessions_succeeded,
            'sessions_failed': self.sessions_failed,
            'bytes_received': self.bytes_received,
        }


async def serve(port: int, host: str = '0.0.0.0',
                output_dir: Union[str, Path] = '.',
                chunk_size: int = CHUNK_SIZE,
                max_header_size: int = MAX_HEADER_SIZE):
    """Receive files on a port until cancelled."""
    listener = Listener(port, host=host, output_dir=output_dir,
                        chunk_size=chunk_size, max_header_size=max_header_size)
    try:
        await listener.serve_forever()
    finally:
        await listener.stop()
