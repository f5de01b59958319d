import pytest
from pathlib import Path

from vsfs.globals import vsfs_geometry
from vsfs.blocks import IndirectBlock
from vsfs.image import VsfsImage


def add_file(
        image: VsfsImage,
        index: int,
        blocks: list[int],
        indirect: int = 0,
        entries: list[int] | None = None,
        mark: bool = True,
    ):
    """
    Make inode `index` a valid one-link file holding `blocks` directly and,
    optionally, `entries` via the single indirect block `indirect`.
    With mark=True the bitmaps are updated to match.
    """
    g = image.geometry
    inode = image.inodes[index]
    inode.mode = 0o100644
    inode.nlink = 1
    inode.direct[:len(blocks)] = blocks
    inode.blocks = len(blocks)
    used = list(blocks)
    if indirect:
        inode.indirect = indirect
        pointers = list(entries or [])
        pointers += [0] * (g.pointers_per_block - len(pointers))
        if g.in_data_region(indirect):
            image.device.write_block(indirect, IndirectBlock(block_pointers=pointers).pack())
        used += [indirect] + list(entries or [])
        inode.blocks += 1 + len(entries or [])
    inode.size = len(used) * g.block_size
    if mark:
        image.inode_bitmap[index] = 1
        for b in used:
            if g.in_data_region(b):
                image.data_bitmap[b - g.data_block_start] = 1


@pytest.fixture
def image_path(tmp_path: Path) -> Path:
    """A consistent image with two files, one of them using an indirect block"""
    path = tmp_path / "vsfs.img"
    with VsfsImage.create(path) as image:
        add_file(image, 0, [8, 9])
        add_file(image, 1, [10], indirect=11, entries=[12, 13])
        image.persist()
    return path


@pytest.fixture
def image(image_path: Path):
    with VsfsImage.from_file(image_path, mode='rw') as image:
        yield image


def reopen(image: VsfsImage) -> VsfsImage:
    """Persist and close `image`, returning a fresh read-write handle on the same file"""
    image.persist()
    image.close()
    return VsfsImage.from_file(image.device.fname, mode='rw', geometry=vsfs_geometry)
