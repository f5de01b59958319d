from typing import Iterator, Self, TYPE_CHECKING
from pathlib import Path
import logging

from .globals import Geometry, vsfs_geometry
from .device import BlockDevice, DeviceMode, ImageIOError
from .metadata import Superblock, Inode
from .blocks import BitmapBlock, IndirectBlock

if TYPE_CHECKING:
    from .refmap import ReferenceMap


class VsfsImage:
    """
    Everything one checker run knows about an image: the device, the
    geometry it is judged against, the superblock, both bitmaps and the
    inode table as loaded from disk.

    Metadata is located using the offsets the superblock claims, without
    validating them first, so a corrupt superblock makes us load garbage
    which the validators then report.  Indirect blocks are read on demand
    and cached until the next load.
    """

    def __init__(self, device: BlockDevice, geometry: Geometry = vsfs_geometry):
        assert device.block_size == geometry.block_size, \
            f"VsfsImage: device block size {device.block_size} != geometry {geometry.block_size}"
        self.device = device
        self.geometry = geometry
        self._indirect: dict[int, IndirectBlock] = {}
        self._dirty: set[int] = set()
        self.references: 'ReferenceMap | None' = None     # rebuilt by every validation pass
        try:
            self.load()
        except ImageIOError:
            device.close()
            raise

    @classmethod
    def from_file(cls, source: Path | str, mode: DeviceMode = 'ro', geometry: Geometry = vsfs_geometry) -> Self:
        return cls(BlockDevice(str(source), mode, block_size=geometry.block_size), geometry)

    @classmethod
    def create(cls, dest: Path | str, geometry: Geometry = vsfs_geometry) -> Self:
        """Format an empty, consistent image with the given geometry"""
        device = BlockDevice.create(str(dest), geometry.total_blocks, geometry.block_size)
        sb = Superblock(**{name: getattr(geometry, name) for name in Geometry.field_names()})
        device.write_block(0, sb.pack(geometry.block_size))
        return cls(device, geometry)

    def __repr__(self):
        n = sum(1 for _ in self.valid_inodes())
        return f"VSFS image {self.device.fname}: {n} of {len(self.inodes)} inodes in use\n{self.superblock}"

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self):
        self.device.close()

    def load(self):
        g = self.geometry
        self.superblock = Superblock.unpack(self.device.read_bytes(0, g.block_size))
        sb = self.superblock
        logging.debug(f"Loaded {sb}")

        self.inode_bitmap = self.device.read_block_type(sb.inode_bitmap_block, BitmapBlock)
        self.data_bitmap = self.device.read_block_type(sb.data_bitmap_block, BitmapBlock)

        table = self.device.read_bytes(sb.inode_table_start * g.block_size, g.inode_count * g.inode_size)
        self.inodes = [
            Inode.unpack(table[i * g.inode_size:(i + 1) * g.inode_size])
            for i in range(g.inode_count)
        ]
        logging.debug(f"Loaded {len(self.inodes)} inodes from block {sb.inode_table_start}")

        self._indirect.clear()
        self._dirty.clear()
        self.references = None

    def persist(self):
        """
        Write the superblock, the inode bitmap, the data bitmap, the inode
        table and finally any modified indirect blocks, in that order,
        to the locations the (possibly repaired) superblock names.
        """
        g = self.geometry
        sb = self.superblock
        self.device.write_block(0, sb.pack(g.block_size))
        self.device.write_block(sb.inode_bitmap_block, self.inode_bitmap.pack())
        self.device.write_block(sb.data_bitmap_block, self.data_bitmap.pack())
        self.device.write_bytes(
            sb.inode_table_start * g.block_size,
            b''.join(inode.pack() for inode in self.inodes)
        )
        for block in sorted(self._dirty):
            self.device.write_block(block, self._indirect[block].pack())
        logging.debug(f"Persisted metadata and {len(self._dirty)} indirect blocks to {self.device.fname}")
        self._dirty.clear()

    def valid_inodes(self) -> Iterator[tuple[int, Inode]]:
        return ((i, inode) for (i, inode) in enumerate(self.inodes) if inode.is_valid)

    def read_indirect(self, block: int) -> IndirectBlock:
        assert self.geometry.in_data_region(block), f"read_indirect({block}): outside data region"
        if block not in self._indirect:
            self._indirect[block] = self.device.read_block_type(block, IndirectBlock)
        return self._indirect[block]

    def mark_dirty(self, block: int):
        assert block in self._indirect, f"mark_dirty({block}): indirect block not loaded"
        self._dirty.add(block)

    @property
    def dirty_blocks(self) -> list[int]:
        return sorted(self._dirty)
