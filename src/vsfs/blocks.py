from typing import Self
from dataclasses import dataclass
import struct
from bitarray import bitarray

from .globals import pointer_size


@dataclass(kw_only=True)
class AbstractBlock:
    def pack(self) -> bytes:
        return NotImplemented

    @classmethod
    def unpack(cls, buf: bytes) -> Self:
        return NotImplemented


@dataclass(kw_only=True)
class BitmapBlock(AbstractBlock):
    """
    A VSFS bitmap stores one bit per object (inode slot or data block) where
    1 is in use and 0 is free.  Bits are stored little-endian, so object 0
    is bit 0 (the least significant bit) of the first byte, object 8 is
    bit 0 of the second byte, and so on.
    """
    bits: bitarray

    def __getitem__(self, index: int) -> int:
        return self.bits[index]

    def __setitem__(self, index: int, value: int):
        self.bits[index] = value

    def __len__(self):
        return len(self.bits)

    def set_bits(self, start: int = 0) -> list[int]:
        return [i for (i, bit) in enumerate(self.bits) if bit and i >= start]

    def pack(self) -> bytes:
        return self.bits.tobytes()

    @classmethod
    def unpack(cls, buf: bytes) -> Self:
        bits = bitarray(endian='little')
        bits.frombytes(bytes(buf))
        return cls(bits=bits)

    @classmethod
    def empty(cls, block_size: int) -> Self:
        return cls.unpack(bytes(block_size))


@dataclass(kw_only=True)
class IndirectBlock(AbstractBlock):
    """
    A single indirect block is a data block holding block_size / 4
    little-endian 32-bit block numbers, where 0 means no block.
    """
    block_pointers: list[int]

    def pack(self) -> bytes:
        return struct.pack(f"<{len(self.block_pointers)}I", *self.block_pointers)

    @classmethod
    def unpack(cls, buf: bytes) -> Self:
        n = len(buf) // pointer_size
        return cls(block_pointers=list(struct.unpack(f"<{n}I", buf[:n * pointer_size])))
