"""
Header Codec

Design Decision: Header Framing
===============================

Options Considered:
1. Length-prefixed binary header
   - Compact, no scanning needed
   - Not human readable, needs struct packing on both sides

2. JSON header + length prefix
   - Extensible
   - Overkill for two fields

3. Plain text "name size" terminated by a delimiter
   - Trivial to produce and to debug with netcat
   - Receiver must scan for the delimiter and may over-read

Decision: Plain text terminated by a newline
- `<file_name> <byte_count>\\n`, then exactly byte_count raw bytes
- The name may not contain whitespace, so the delimiter can never
  appear inside it and no escaping is needed
- Bytes read past the delimiter are handed back as "residual" payload

Wire Format:
```
+-------------+---+--------------+----+------------------------+
| file_name   | SP| byte_count   | \\n | raw bytes (byte_count) |
+-------------+---+--------------+----+------------------------+
```
"""

from dataclasses import dataclass
from typing import Tuple

from .errors import HeaderMalformed

DELIMITER = b'\n'

# Bounded read/write unit for payload bytes
CHUNK_SIZE = 4096

# Headers longer than this are rejected before the delimiter is found
MAX_HEADER_SIZE = 4096


@dataclass(frozen=True)
class Header:
    """The leading record of a transfer."""
    file_name: str
    byte_count: int

    def encode(self) -> bytes:
        return encode(self.file_name, self.byte_count)


def encode(file_name: str, byte_count: int) -> bytes:
    """
    Encode a header.

    Raises:
        HeaderMalformed: if the header could not be decoded by a receiver
    """
    if not file_name:
        raise HeaderMalformed("File name is empty")
    if len(file_name.split()) != 1 or file_name.strip() != file_name:
        raise HeaderMalformed(f"File name contains whitespace: {file_name!r}")
    if DELIMITER.decode('ascii') in file_name:
        raise HeaderMalformed(f"File name contains the delimiter: {file_name!r}")
    if byte_count < 0:
        raise HeaderMalformed(f"Negative byte count: {byte_count}")

    return f"{file_name} {byte_count}".encode('utf-8') + DELIMITER


def scan(buffer: bytes, max_size: int = MAX_HEADER_SIZE) -> bool:
    """
    Check whether a partially received buffer holds a complete header.

    Returns:
        True once the delimiter has arrived, False if more bytes are needed

    Raises:
        HeaderMalformed: if max_size bytes arrived without a delimiter
    """
    if buffer.find(DELIMITER, 0, max_size) >= 0:
        return True
    if len(buffer) >= max_size:
        raise HeaderMalformed(f"No header delimiter within {max_size} bytes")
    return False


def decode(buffer: bytes, max_size: int = MAX_HEADER_SIZE) -> Tuple[Header, bytes]:
    """
    Decode a header from the start of a buffer.

    Returns:
        (header, residual) where residual holds the bytes that followed
        the delimiter. They belong to the payload.

    Raises:
        HeaderMalformed: on a missing delimiter, wrong token count or
            invalid size
    """
    end = buffer.find(DELIMITER, 0, max_size)
    if end < 0:
        raise HeaderMalformed(f"No header delimiter within {max_size} bytes")

    residual = bytes(buffer[end + len(DELIMITER):])
    tokens = bytes(buffer[:end]).split()

    if len(tokens) != 2:
        raise HeaderMalformed(f"Expected 2 header fields, got {len(tokens)}")

    name_token, size_token = tokens

    # isdigit() rejects signs, so "+5" and "-5" both fail here
    if not size_token.isdigit():
        raise HeaderMalformed(f"Invalid byte count: {size_token!r}")

    try:
        file_name = name_token.decode('utf-8')
    except UnicodeDecodeError as e:
        raise HeaderMalformed(f"File name is not valid UTF-8: {e}") from e

    try:
        byte_count = int(size_token)
    except ValueError as e:
        # int() refuses very long digit strings
        raise HeaderMalformed(f"Invalid byte count: {e}") from e

    return Header(file_name=file_name, byte_count=byte_count), residual
