from pathlib import Path

from vsfs.image import VsfsImage
from vsfs.blocks import IndirectBlock
from vsfs.findings import Category
from vsfs.validators import validate
from vsfs.repair import repair
from vsfs.checker import check_image, check_file

from conftest import add_file, reopen


def test_clean_image_is_untouched(image_path: Path):
    before = image_path.read_bytes()
    result = check_file(image_path)
    assert result.original_errors == 0
    assert not result.repaired
    assert result.second is None
    assert image_path.read_bytes() == before


def test_magic_repaired(image: VsfsImage):
    image.superblock.magic = 0xBEEF
    image = reopen(image)
    result = check_image(image)
    assert result.original_errors == 1
    assert result.remaining_errors == 0
    assert result.second is not None and result.second.is_clean(Category.superblock)
    assert image.superblock.magic == 0xD34D
    assert result.repairs is not None
    assert [(r.location, r.before, r.after) for r in result.repairs] == [('magic', 0xBEEF, 0xD34D)]


def test_unpopulated_inode_count_left_alone(image: VsfsImage):
    image.superblock.inode_count = 0
    image.superblock.magic = 1
    repairs = repair(image)
    assert [r.location for r in repairs] == ['magic']
    assert image.superblock.inode_count == 0


def test_inode_bitmap_repaired(image: VsfsImage):
    image.inode_bitmap[5] = 1
    image.inode_bitmap[1] = 0
    image = reopen(image)
    result = check_image(image)
    assert result.original_errors == 2
    assert result.remaining_errors == 0
    assert image.inode_bitmap.set_bits() == [0, 1]


def test_data_bitmap_repaired(image: VsfsImage):
    image.data_bitmap[30] = 1
    image.data_bitmap[12 - 8] = 0
    image.data_bitmap[56] = 1
    image = reopen(image)
    result = check_image(image)
    assert result.original_errors == 3
    assert result.remaining_errors == 0
    assert image.data_bitmap.set_bits() == [0, 1, 2, 3, 4, 5]


def test_out_of_range_direct_block(image: VsfsImage):
    add_file(image, 2, [64])
    # a stray bit for the bogus block number, just past the data region
    image.data_bitmap[64 - 8] = 1
    image = reopen(image)

    result = check_image(image)
    assert [f.category for f in result.first] == [Category.data_bitmap, Category.bad_block]
    assert result.remaining_errors == 0
    assert image.inodes[2].direct[0] == 0
    assert not image.data_bitmap[56]


def test_out_of_range_indirect_pointer(image: VsfsImage):
    add_file(image, 2, [20], indirect=4000)
    image = reopen(image)
    result = check_image(image)
    assert result.original_errors == 1
    assert result.remaining_errors == 0
    assert image.inodes[2].indirect == 0
    assert image.inodes[2].direct[0] == 20


def test_out_of_range_indirect_entries(image: VsfsImage):
    add_file(image, 2, [20], indirect=21, entries=[22, 7, 0, 1 << 20])
    image = reopen(image)
    mark = image.device.mark_session()
    repairs = repair(image)

    assert [r.location for r in repairs] == ["inode 2 indirect entry 1", "inode 2 indirect entry 3"]
    assert image.device.get_access_log('w', mark) == [0, 1, 2, 3, 21]
    entries = image.device.read_block_type(21, IndirectBlock).block_pointers
    assert entries[:4] == [22, 0, 0, 0]
    image.load()
    assert validate(image).error_count == 0


def test_duplicates_survive_repair(image: VsfsImage):
    add_file(image, 2, [20])
    add_file(image, 3, [20])
    image = reopen(image)
    result = check_image(image)
    assert result.repaired
    assert result.repairs == []
    assert result.second is not None
    assert result.second.by_category(Category.duplicate) == result.first.by_category(Category.duplicate)
    assert result.remaining_errors == 1


def test_misplaced_bitmap_pointer(image: VsfsImage):
    image.superblock.inode_bitmap_block = 5
    image.device.write_block(0, image.superblock.pack(4096))
    image.load()
    result = check_image(image)
    # the bitmap loaded from the inode table is empty, so inodes 0 and 1 look unmarked
    assert [f.location for f in result.first] == ['inode_bitmap_block', 'inode 0', 'inode 1']
    assert result.remaining_errors == 0
    assert image.superblock.inode_bitmap_block == 1
    assert image.inode_bitmap.set_bits() == [0, 1]


def test_repair_is_idempotent(image_path: Path):
    with VsfsImage.from_file(image_path, mode='rw') as image:
        image.superblock.total_blocks = 9
        image.inode_bitmap[50] = 1
        image.data_bitmap[0] = 0
        add_file(image, 3, [30, 99], indirect=31, entries=[32, 2])
        image.persist()

    first = check_file(image_path)
    assert first.original_errors == 5
    assert first.remaining_errors == 0

    after = image_path.read_bytes()
    second = check_file(image_path)
    assert second.original_errors == 0
    assert not second.repaired
    assert image_path.read_bytes() == after

    with VsfsImage.from_file(image_path, mode='rw') as image:
        assert repair(image) == []


def test_check_only(image: VsfsImage):
    image.superblock.magic = 0
    image = reopen(image)
    path = image.device.fname
    image.close()
    before = Path(path).read_bytes()

    result = check_file(path, repair=False)
    assert result.original_errors == 1
    assert not result.repaired
    assert result.remaining_errors == 1
    assert Path(path).read_bytes() == before
