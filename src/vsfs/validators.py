"""
The five consistency checks.  Each one reports every problem it finds to a
FindingLog and returns True when it found none; none of them stops early
or depends on another having passed.
"""
from typing import Callable, Iterator
import logging

from .globals import Geometry
from .blocks import BitmapBlock
from .image import VsfsImage
from .findings import Category, FindingLog
from .refmap import BlockSlot, SlotKind, walk_slots, build_reference_map, collect_claimants


_field_labels = dict(
    magic="magic number",
    block_size="block size",
    total_blocks="total blocks",
    inode_bitmap_block="inode bitmap block",
    data_bitmap_block="data bitmap block",
    inode_table_start="inode table start",
    data_block_start="data block start",
    inode_size="inode size",
    inode_count="inode count",
)


def _fmt_field(name: str, value: int) -> str:
    return f"{value:#x}" if name == 'magic' else str(value)


def superblock_mismatches(image: VsfsImage) -> Iterator[tuple[str, int, int]]:
    """(field, found, expected) for each superblock field that disagrees with the geometry"""
    for name in Geometry.field_names():
        found = getattr(image.superblock, name)
        expected = getattr(image.geometry, name)
        # an inode count of zero means the field was never populated
        if found == expected or (name == 'inode_count' and found == 0):
            continue
        yield (name, found, expected)


def bitmap_mismatches(bitmap: BitmapBlock, in_use: list[bool]) -> Iterator[tuple[int, bool]]:
    """
    (bit, wanted) for each bit that disagrees with in_use, including any
    set bit past the end of in_use, which has no object behind it.
    """
    for (i, used) in enumerate(in_use):
        if bool(bitmap[i]) != used:
            yield (i, used)
    for i in bitmap.set_bits(len(in_use)):
        yield (i, False)


def expected_data_bitmap(image: VsfsImage) -> list[bool]:
    refs = build_reference_map(image)
    return [block in refs for block in image.geometry.data_range]


def bad_block_slots(image: VsfsImage) -> list[BlockSlot]:
    in_range = image.geometry.in_data_region
    return [slot for slot in walk_slots(image) if not in_range(slot.block)]


def check_superblock(image: VsfsImage, log: FindingLog) -> bool:
    consistent = True
    for (name, found, expected) in superblock_mismatches(image):
        label = _field_labels[name]
        log.report(Category.superblock, name, found, expected,
            f"Invalid {label} ({_fmt_field(name, found)}), should be {_fmt_field(name, expected)}")
        consistent = False
    return consistent


def check_inode_bitmap(image: VsfsImage, log: FindingLog) -> bool:
    consistent = True
    in_use = [inode.is_valid for inode in image.inodes]
    for (i, wanted) in bitmap_mismatches(image.inode_bitmap, in_use):
        if i >= len(in_use):
            msg = f"Inode bitmap bit {i} is set but there are only {len(in_use)} inodes"
        elif wanted:
            msg = f"Inode {i} is valid but not marked as used in bitmap"
        else:
            msg = f"Inode {i} is marked as used in bitmap but is not valid"
        log.report(Category.inode_bitmap, f"inode {i}", int(not wanted), int(wanted), msg)
        consistent = False
    return consistent


def check_data_bitmap(image: VsfsImage, log: FindingLog) -> bool:
    consistent = True
    start = image.geometry.data_block_start
    in_use = expected_data_bitmap(image)
    refs = image.references
    assert refs is not None
    for (i, wanted) in bitmap_mismatches(image.data_bitmap, in_use):
        block = start + i
        if i >= len(in_use):
            msg = f"Data bitmap bit {i} (block {block}) is set beyond the end of the data region"
        elif wanted:
            msg = f"Block {block} is referenced by inode {refs.owner(block)} but not marked as used in data bitmap"
        else:
            msg = f"Block {block} is marked as used in data bitmap but not referenced by any inode"
        log.report(Category.data_bitmap, f"block {block}", int(not wanted), int(wanted), msg)
        consistent = False
    return consistent


def check_duplicate_blocks(image: VsfsImage, log: FindingLog) -> bool:
    no_duplicates = True
    claims = collect_claimants(image)
    for block in sorted(claims):
        inodes = claims[block]
        if len(inodes) > 1:
            log.report(Category.duplicate, f"block {block}", inodes, "a single owner",
                f"Block {block} is referenced by multiple inodes: {' '.join(str(i) for i in inodes)}")
            no_duplicates = False
    return no_duplicates


def check_bad_blocks(image: VsfsImage, log: FindingLog) -> bool:
    no_bad_blocks = True
    g = image.geometry
    for slot in bad_block_slots(image):
        if slot.kind == SlotKind.DIRECT:
            msg = f"Inode {slot.inode} has direct block {slot.index} with invalid block number {slot.block}"
        elif slot.kind == SlotKind.INDIRECT:
            msg = f"Inode {slot.inode} has invalid indirect block number {slot.block}"
        else:
            msg = f"Inode {slot.inode} has indirect entry {slot.index} with invalid block number {slot.block}"
        log.report(Category.bad_block, str(slot), slot.block,
            f"{g.data_block_start} <= block < {g.total_blocks}", msg)
        no_bad_blocks = False
    return no_bad_blocks


Validator = Callable[[VsfsImage, FindingLog], bool]

validators: dict[Category, Validator] = {
    Category.superblock: check_superblock,
    Category.inode_bitmap: check_inode_bitmap,
    Category.data_bitmap: check_data_bitmap,
    Category.duplicate: check_duplicate_blocks,
    Category.bad_block: check_bad_blocks,
}


def validate(image: VsfsImage) -> FindingLog:
    """Run every validator over the image as currently loaded"""
    log = FindingLog()
    for (category, check) in validators.items():
        if not check(image, log):
            logging.info(f"{category.value}: {len(log.by_category(category))} errors")
    return log
