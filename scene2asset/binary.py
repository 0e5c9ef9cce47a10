"""Little-endian primitive writer/reader shared by the asset encoders.

Strings are stored as an int32 byte count followed by the raw bytes, with no
terminator.
"""

import struct
from dataclasses import dataclass

from .formats import TEXT_ENCODING


def _to_bytes(value):
    if isinstance(value, str):
        return value.encode(TEXT_ENCODING)
    return bytes(value)


class BinaryWriter:
    """Append-only writer over any binary file object."""

    def __init__(self, stream):
        self.stream = stream
        self.written = 0

    def raw(self, data):
        self.stream.write(data)
        self.written += len(data)

    def pack(self, fmt, *values):
        self.raw(struct.pack('<' + fmt, *values))

    def u32(self, value):
        self.pack('I', value)

    def i32(self, value):
        self.pack('i', value)

    def f32(self, value):
        self.pack('f', value)

    def floats(self, values):
        values = tuple(values)
        self.pack(f'{len(values)}f', *values)

    def ints(self, values):
        values = tuple(values)
        self.pack(f'{len(values)}i', *values)

    def string(self, value):
        data = _to_bytes(value)
        self.i32(len(data))
        self.raw(data)


class AssetReadError(ValueError):
    pass


@dataclass
class BinaryReader:
    data: bytes
    ofs: int = 0

    def remaining(self):
        return len(self.data) - self.ofs

    def read(self, n):
        b = self.data[self.ofs:self.ofs + n]
        if len(b) != n:
            raise AssetReadError(f"Unexpected EOF at {self.ofs}, need {n}")
        self.ofs += n
        return b

    def unpack(self, fmt):
        fmt = '<' + fmt
        return struct.unpack(fmt, self.read(struct.calcsize(fmt)))

    def u32(self):
        return self.unpack('I')[0]

    def i32(self):
        return self.unpack('i')[0]

    def f32(self):
        return self.unpack('f')[0]

    def floats(self, count):
        return self.unpack(f'{count}f')

    def ints(self, count):
        return self.unpack(f'{count}i')

    def string(self):
        length = self.i32()
        if length < 0:
            raise AssetReadError(f"Negative string length {length} at {self.ofs - 4}")
        return self.read(length).decode(TEXT_ENCODING, errors='replace')
