from typing import Final
from dataclasses import dataclass, fields


# fixed record sizes we can verify
pointer_size: Final         = 4
direct_pointers: Final      = 12
inode_record_size: Final    = 256


@dataclass(frozen=True, kw_only=True)
class Geometry:
    """
    The one layout a VSFS image is allowed to have.

    Field names match the superblock so that a superblock can be compared
    field by field against this descriptor.

    +---------+--------+--------+-------------------+----------------------+
    | Block 0 | Block 1| Block 2| Blocks 3..7       | Blocks 8..63         |
    | Super   | Inode  | Data   | Inode table       | Data region          |
    | block   | bitmap | bitmap | (80 x 256 bytes)  |                      |
    +---------+--------+--------+-------------------+----------------------+
    """
    magic: int = 0xD34D
    block_size: int = 4096
    total_blocks: int = 64
    inode_bitmap_block: int = 1
    data_bitmap_block: int = 2
    inode_table_start: int = 3
    data_block_start: int = 8
    inode_size: int = inode_record_size
    inode_count: int = 80

    def __post_init__(self):
        if self.block_size % pointer_size:
            raise ValueError(f"Geometry: block_size {self.block_size} is not a multiple of {pointer_size}")
        if self.inode_size != inode_record_size:
            raise ValueError(f"Geometry: inode_size {self.inode_size} != record size {inode_record_size}")
        if self.inode_table_start + self.inode_table_blocks > self.data_block_start:
            raise ValueError(
                f"Geometry: inode table at {self.inode_table_start} "
                f"({self.inode_table_blocks} blocks) overlaps data region at {self.data_block_start}"
            )
        if not 0 < self.data_block_start < self.total_blocks:
            raise ValueError(f"Geometry: data region {self.data_block_start} outside volume of {self.total_blocks} blocks")
        bits = self.block_size << 3
        if self.inode_count > bits or self.data_blocks > bits:
            raise ValueError(f"Geometry: bitmaps of {bits} bits can't cover {self.inode_count} inodes, {self.data_blocks} blocks")
        metadata = {0, self.inode_bitmap_block, self.data_bitmap_block}
        if len(metadata) != 3 or max(metadata) >= self.inode_table_start:
            raise ValueError(f"Geometry: bitmap blocks {self.inode_bitmap_block}, {self.data_bitmap_block} misplaced")

    @classmethod
    def field_names(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    @property
    def data_blocks(self) -> int:
        return self.total_blocks - self.data_block_start

    @property
    def data_range(self) -> range:
        return range(self.data_block_start, self.total_blocks)

    @property
    def pointers_per_block(self) -> int:
        return self.block_size // pointer_size

    @property
    def inode_table_blocks(self) -> int:
        return -(-self.inode_count * self.inode_size // self.block_size)

    def in_data_region(self, block: int) -> bool:
        return self.data_block_start <= block < self.total_blocks


vsfs_geometry: Final = Geometry()
