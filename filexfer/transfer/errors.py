"""
Transfer Errors

Sender errors are fatal: they unwind to the caller and end the process.
Receiver errors are local to one connection: the session logs them and
is discarded, the listener keeps accepting.
"""


class TransferError(Exception):
    """Base class for all transfer failures."""


# === Sender ===

class SendError(TransferError):
    """A fatal error on the sending side."""


class OpenFileError(SendError):
    pass


class ResolveError(SendError):
    pass


class ConnectError(SendError):
    pass


class HeaderWriteError(SendError):
    pass


class BufferReadError(SendError):
    pass


class BufferWriteError(SendError):
    pass


# === Receiver ===

class BindError(TransferError):
    """The listener could not bind its port."""


class ReceiveError(TransferError):
    """A failure confined to a single receiving session."""


class HeaderReadError(ReceiveError):
    pass


class HeaderMalformed(ReceiveError):
    pass


class OutputOpenError(ReceiveError):
    pass


class OutputWriteError(ReceiveError):
    pass


class BodyReadError(ReceiveError):
    pass


class IncompleteTransfer(ReceiveError):
    """The peer closed the connection before sending every announced byte."""

    def __init__(self, expected: int, received: int):
        super().__init__(f"Incomplete transfer: received {received} of {expected} bytes")
        self.expected = expected
        self.received = received


class UnexpectedData(ReceiveError):
    """The peer sent more bytes than its header announced."""
