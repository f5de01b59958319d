"""
Repairs for everything the validators can find, except duplicate block
ownership: we can't tell which claimant should keep a shared block, so
duplicates are left alone and stay visible on the next check.

Every step recomputes what it fixes from the current in-memory state
rather than from a list of findings, so running it again over an already
repaired image changes nothing.
"""
import logging

from .image import VsfsImage
from .findings import Category, Repair
from .refmap import SlotKind
from .validators import superblock_mismatches, bitmap_mismatches, \
    expected_data_bitmap, bad_block_slots


def repair_superblock(image: VsfsImage) -> list[Repair]:
    repairs: list[Repair] = []
    for (name, found, expected) in list(superblock_mismatches(image)):
        setattr(image.superblock, name, expected)
        repairs.append(Repair(category=Category.superblock, location=name, before=found, after=expected))
    return repairs


def repair_inode_bitmap(image: VsfsImage) -> list[Repair]:
    repairs: list[Repair] = []
    in_use = [inode.is_valid for inode in image.inodes]
    for (i, wanted) in list(bitmap_mismatches(image.inode_bitmap, in_use)):
        image.inode_bitmap[i] = wanted
        repairs.append(Repair(category=Category.inode_bitmap, location=f"inode {i}", before=int(not wanted), after=int(wanted)))
    return repairs


def repair_data_bitmap(image: VsfsImage) -> list[Repair]:
    repairs: list[Repair] = []
    start = image.geometry.data_block_start
    in_use = expected_data_bitmap(image)
    for (i, wanted) in list(bitmap_mismatches(image.data_bitmap, in_use)):
        image.data_bitmap[i] = wanted
        repairs.append(Repair(category=Category.data_bitmap, location=f"block {start + i}", before=int(not wanted), after=int(wanted)))
    return repairs


def repair_bad_blocks(image: VsfsImage) -> list[Repair]:
    """Zero every out-of-range block number held by a valid inode"""
    repairs: list[Repair] = []
    for slot in bad_block_slots(image):
        inode = image.inodes[slot.inode]
        if slot.kind == SlotKind.DIRECT:
            inode.direct[slot.index] = 0
        elif slot.kind == SlotKind.INDIRECT:
            inode.indirect = 0
        else:
            indirect = image.read_indirect(inode.indirect)
            if not indirect.block_pointers[slot.index]:
                # already cleared via another inode sharing this indirect block
                continue
            indirect.block_pointers[slot.index] = 0
            image.mark_dirty(inode.indirect)
        repairs.append(Repair(category=Category.bad_block, location=str(slot), before=slot.block, after=0))
    return repairs


def repair(image: VsfsImage) -> list[Repair]:
    """Fix what can be fixed, in order, then write all metadata back to the image"""
    repairs = repair_superblock(image)
    repairs += repair_inode_bitmap(image)
    repairs += repair_data_bitmap(image)
    repairs += repair_bad_blocks(image)
    for r in repairs:
        logging.debug(str(r))
    image.persist()
    logging.info(f"Applied {len(repairs)} repairs to {image.device.fname}")
    return repairs
