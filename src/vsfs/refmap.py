"""Data block references held by valid inodes."""
from typing import Iterator, NamedTuple
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
import logging

from .image import VsfsImage


class SlotKind(Enum):
    """Where in an inode a block number is stored."""
    DIRECT = 'direct block'
    INDIRECT = 'indirect block'
    ENTRY = 'indirect entry'


class BlockSlot(NamedTuple):
    inode: int
    kind: SlotKind
    index: int      # direct slot or indirect entry number, 0 for the indirect pointer
    block: int

    def __str__(self):
        if self.kind == SlotKind.INDIRECT:
            return f"inode {self.inode} {self.kind.value}"
        return f"inode {self.inode} {self.kind.value} {self.index}"


def inode_slots(image: VsfsImage, index: int) -> Iterator[BlockSlot]:
    """
    Yield every nonzero block number held by inode `index`: its direct
    pointers, its single indirect pointer and, when that pointer lies in
    the data region, each entry of the indirect block.

    Double and triple indirect pointers are never followed.
    """
    inode = image.inodes[index]
    for (j, block) in enumerate(inode.direct):
        if block:
            yield BlockSlot(index, SlotKind.DIRECT, j, block)
    if inode.indirect:
        yield BlockSlot(index, SlotKind.INDIRECT, 0, inode.indirect)
        if image.geometry.in_data_region(inode.indirect):
            for (k, block) in enumerate(image.read_indirect(inode.indirect).block_pointers):
                if block:
                    yield BlockSlot(index, SlotKind.ENTRY, k, block)


def walk_slots(image: VsfsImage) -> Iterator[BlockSlot]:
    """All block slots of all valid inodes, in inode order"""
    for (i, _) in image.valid_inodes():
        yield from inode_slots(image, i)


def walk_references(image: VsfsImage) -> Iterator[BlockSlot]:
    """Like walk_slots but only the block numbers that fall in the data region"""
    in_range = image.geometry.in_data_region
    return (slot for slot in walk_slots(image) if in_range(slot.block))


@dataclass
class ReferenceMap:
    """Maps each referenced data block to the first inode found claiming it"""
    owners: dict[int, int] = field(default_factory=dict)

    def __contains__(self, block: int) -> bool:
        return block in self.owners

    def __len__(self):
        return len(self.owners)

    def owner(self, block: int) -> int | None:
        return self.owners.get(block)

    def claim(self, block: int, inode: int):
        # later claimants don't displace the first, duplicates are checked separately
        self.owners.setdefault(block, inode)


def build_reference_map(image: VsfsImage) -> ReferenceMap:
    refs = ReferenceMap()
    for slot in walk_references(image):
        refs.claim(slot.block, slot.inode)
    logging.debug(f"Reference map: {len(refs)} data blocks in use")
    image.references = refs
    return refs


def collect_claimants(image: VsfsImage) -> dict[int, list[int]]:
    """Every claim on every data block, one list entry per claiming slot"""
    claims: defaultdict[int, list[int]] = defaultdict(list)
    for slot in walk_references(image):
        claims[slot.block].append(slot.inode)
    return dict(claims)
