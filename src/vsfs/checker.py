from dataclasses import dataclass
from pathlib import Path
import logging

from .image import VsfsImage
from .findings import FindingLog, Repair
from .validators import validate
from .repair import repair as repair_image


@dataclass
class RunResult:
    """
    Outcome of one checker run: the first validation pass and, if that
    found anything and repair was allowed, the repairs made and the
    validation pass over the repaired image.
    """
    first: FindingLog
    repairs: list[Repair] | None = None
    second: FindingLog | None = None

    @property
    def repaired(self) -> bool:
        return self.repairs is not None

    @property
    def original_errors(self) -> int:
        return self.first.error_count

    @property
    def remaining_errors(self) -> int:
        last = self.second if self.second is not None else self.first
        return last.error_count


def check_image(image: VsfsImage, repair: bool = True) -> RunResult:
    """
    Validate the loaded image; if there are errors and repair is allowed,
    repair and persist once, reload from disk and validate again.
    There is never a second repair cycle.
    """
    result = RunResult(first=validate(image))
    logging.info(f"First pass over {image.device.fname}: {result.original_errors} errors")
    if not result.original_errors or not repair:
        return result

    result.repairs = repair_image(image)
    image.load()
    result.second = validate(image)
    logging.info(f"Re-check of {image.device.fname}: {result.remaining_errors} errors remain")
    return result


def check_file(source: Path | str, repair: bool = True) -> RunResult:
    with VsfsImage.from_file(source, mode='rw' if repair else 'ro') as image:
        return check_image(image, repair=repair)
