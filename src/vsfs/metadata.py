from typing import ClassVar, Self
from dataclasses import dataclass, field
import struct

from .globals import direct_pointers, inode_record_size


@dataclass(kw_only=True)
class Superblock:
    """
    Block 0 of the image.  The 16-bit magic is followed by two bytes of
    alignment padding before the 32-bit geometry fields; whatever follows
    up to the end of the block is reserved.
    """
    _struct: ClassVar = "<H2s8I"
    _size: ClassVar = struct.calcsize(_struct)

    magic: int
    padding: bytes = bytes(2)
    block_size: int
    total_blocks: int
    inode_bitmap_block: int
    data_bitmap_block: int
    inode_table_start: int
    data_block_start: int
    inode_size: int
    inode_count: int
    reserved: bytes = b''

    def __repr__(self):
        return (
            f"Superblock magic {self.magic:#06x}, {self.total_blocks} x {self.block_size} byte blocks, "
            f"bitmaps @ {self.inode_bitmap_block}/{self.data_bitmap_block}, "
            f"inodes @ {self.inode_table_start} ({self.inode_count} x {self.inode_size}), "
            f"data @ {self.data_block_start}"
        )

    def pack(self, block_size: int) -> bytes:
        data = struct.pack(Superblock._struct,
            self.magic,
            self.padding,
            self.block_size,
            self.total_blocks,
            self.inode_bitmap_block,
            self.data_bitmap_block,
            self.inode_table_start,
            self.data_block_start,
            self.inode_size,
            self.inode_count,
        )
        reserved = self.reserved[:block_size - len(data)]
        return data + reserved + bytes(block_size - len(data) - len(reserved))

    @classmethod
    def unpack(kls, buf: bytes) -> Self:
        n = kls._size
        (
            magic,
            padding,
            block_size,
            total_blocks,
            inode_bitmap_block,
            data_bitmap_block,
            inode_table_start,
            data_block_start,
            inode_size,
            inode_count,
        ) = struct.unpack(kls._struct, buf[:n])
        return kls(
            magic=magic,
            padding=padding,
            block_size=block_size,
            total_blocks=total_blocks,
            inode_bitmap_block=inode_bitmap_block,
            data_bitmap_block=data_bitmap_block,
            inode_table_start=inode_table_start,
            data_block_start=data_block_start,
            inode_size=inode_size,
            inode_count=inode_count,
            reserved=bytes(buf[n:]),
        )


@dataclass(kw_only=True)
class Inode:
    _struct: ClassVar = f"<10I{direct_pointers}I3I156s"
    _size: ClassVar = struct.calcsize(_struct)

    mode: int = 0
    uid: int = 0
    gid: int = 0
    size: int = 0
    atime: int = 0
    ctime: int = 0
    mtime: int = 0
    dtime: int = 0
    nlink: int = 0
    blocks: int = 0
    direct: list[int] = field(default_factory=lambda: [0] * direct_pointers)
    indirect: int = 0
    double_indirect: int = 0    # never traversed
    triple_indirect: int = 0    # never traversed
    reserved: bytes = bytes(156)

    def __repr__(self):
        state = 'valid' if self.is_valid else 'free'
        pointers = ','.join(str(b) for b in self.direct if b)
        return f"<{state} mode {self.mode:o} nlink {self.nlink} size {self.size} [{pointers}] ind {self.indirect}>"

    def __post_init__(self):
        assert len(self.direct) == direct_pointers, \
            f"Inode: expected {direct_pointers} direct pointers, got {len(self.direct)}"

    @property
    def is_valid(self) -> bool:
        return self.nlink > 0 and self.dtime == 0

    def pack(self) -> bytes:
        return struct.pack(Inode._struct,
            self.mode,
            self.uid,
            self.gid,
            self.size,
            self.atime,
            self.ctime,
            self.mtime,
            self.dtime,
            self.nlink,
            self.blocks,
            *self.direct,
            self.indirect,
            self.double_indirect,
            self.triple_indirect,
            self.reserved,
        )

    @classmethod
    def unpack(kls, buf: bytes) -> Self:
        values = struct.unpack(kls._struct, buf)
        (
            mode, uid, gid, size,
            atime, ctime, mtime, dtime,
            nlink, blocks,
        ) = values[:10]
        n = 10 + direct_pointers
        (
            indirect,
            double_indirect,
            triple_indirect,
            reserved,
        ) = values[n:]
        return kls(
            mode=mode,
            uid=uid,
            gid=gid,
            size=size,
            atime=atime,
            ctime=ctime,
            mtime=mtime,
            dtime=dtime,
            nlink=nlink,
            blocks=blocks,
            direct=list(values[10:n]),
            indirect=indirect,
            double_indirect=double_indirect,
            triple_indirect=triple_indirect,
            reserved=reserved,
        )


# static tests

assert Superblock._size == 36
assert Inode._size == inode_record_size
