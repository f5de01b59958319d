from typing import Tuple, List, Literal, Type, TypeVar
import logging
from mmap import mmap, ACCESS_READ, ACCESS_WRITE
from os import path

from .blocks import AbstractBlock


BlockT = TypeVar('BlockT', bound=AbstractBlock)
AccessT = Literal['r', 'w']
DeviceMode = Literal['ro', 'rw']


class ImageIOError(OSError):
    """The backing image can't be opened, or a read/write falls outside it"""


class BlockDevice:
    def __init__(self, fname: str, mode: DeviceMode = 'ro', block_size: int = 4096):
        self.fname = fname
        self.mode = mode
        self.block_size = block_size
        try:
            self._file = open(fname, 'r+b' if mode == 'rw' else 'rb', buffering=0)
        except OSError as e:
            raise ImageIOError(e.errno, f"Can't open file system image {fname}: {e.strerror}") from e
        try:
            self.mm = mmap(self._file.fileno(), 0, access=ACCESS_WRITE if mode == 'rw' else ACCESS_READ)
        except (OSError, ValueError) as e:
            self._file.close()
            raise ImageIOError(f"Can't map file system image {fname}: {e}") from e
        self._access_log: List[Tuple[AccessT, int]] = []

        n = len(self.mm)
        if n % block_size:
            logging.warning(f"BlockDevice: {fname} size {n} is not a multiple of {block_size} bytes")
        self.total_blocks = n // block_size

    def __repr__(self):
        return f"BlockDevice on {self.fname} ({self.mode}) with {self.total_blocks} blocks of {self.block_size} bytes"

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    @classmethod
    def create(kls, fname: str, total_blocks: int, block_size: int = 4096) -> 'BlockDevice':
        assert not path.exists(fname), f"BlockDevice.create: {fname} already exists!"
        with open(fname, 'wb') as f:
            f.write(bytes(total_blocks * block_size))
        return BlockDevice(fname, mode='rw', block_size=block_size)

    @property
    def closed(self) -> bool:
        return self.mm.closed

    def close(self):
        if self.mm.closed:
            return
        if self.mode == 'rw':
            self.mm.flush()
        self.mm.close()
        self._file.close()

    def mark_session(self) -> int:
        return len(self._access_log)

    def get_access_log(self, access_types: str, mark=0) -> list[int]:
        return [i for (t, i) in self._access_log[mark:] if t in access_types]

    def read_bytes(self, offset: int, n: int) -> bytes:
        if offset < 0 or offset + n > len(self.mm):
            raise ImageIOError(f"Short read of {n} bytes at offset {offset} from {self.fname} ({len(self.mm)} bytes)")
        self._access_log.append(('r', offset // self.block_size))
        return self.mm[offset:offset+n]

    def write_bytes(self, offset: int, data: bytes):
        if self.mode != 'rw':
            raise ImageIOError(f"Can't write to {self.fname}: opened read-only")
        if offset < 0 or offset + len(data) > len(self.mm):
            raise ImageIOError(f"Short write of {len(data)} bytes at offset {offset} to {self.fname} ({len(self.mm)} bytes)")
        self._access_log.append(('w', offset // self.block_size))
        self.mm[offset:offset+len(data)] = data

    def read_block(self, block_index: int) -> bytes:
        return self.read_bytes(block_index * self.block_size, self.block_size)

    def write_block(self, block_index: int, data: bytes):
        assert len(data) == self.block_size, \
            f"write_block({block_index}): expected {self.block_size} bytes, got {len(data)}"
        self.write_bytes(block_index * self.block_size, data)

    def read_block_type(self, block_index: int, factory: Type[BlockT]) -> BlockT:
        return factory.unpack(self.read_block(block_index))
