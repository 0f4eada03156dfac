"""
Transfer Module - Single File Streaming

Header codec, sending session, receiving session and listener.
"""

from .errors import (
    TransferError, SendError, ReceiveError,
    OpenFileError, ResolveError, ConnectError, HeaderWriteError,
    BufferReadError, BufferWriteError, BindError,
    HeaderReadError, HeaderMalformed, OutputOpenError, OutputWriteError,
    BodyReadError, IncompleteTransfer, UnexpectedData,
)
from .header import Header, DELIMITER, CHUNK_SIZE, MAX_HEADER_SIZE
from .sender import TransferSession, SenderState, send_file
from .receiver import ConnectionSession, ReceiverState, SessionResult
from .listener import Listener, serve

__all__ = [
    'Header',
    'DELIMITER',
    'CHUNK_SIZE',
    'MAX_HEADER_SIZE',
    'TransferSession',
    'SenderState',
    'send_file',
    'ConnectionSession',
    'ReceiverState',
    'SessionResult',
    'Listener',
    'serve',
    'TransferError',
    'SendError',
    'ReceiveError',
    'OpenFileError',
    'ResolveError',
    'ConnectError',
    'HeaderWriteError',
    'BufferReadError',
    'BufferWriteError',
    'BindError',
    'HeaderReadError',
    'HeaderMalformed',
    'OutputOpenError',
    'OutputWriteError',
    'BodyReadError',
    'IncompleteTransfer',
    'UnexpectedData',
]
