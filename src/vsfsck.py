from typing import Annotated
import logging
import shutil
import sys
from pathlib import Path
import typer
from typer import Option, Argument
from typer_di import TyperDI, Depends

from vsfs.checker import check_file
from vsfs.report import format_report


logging.basicConfig(level=logging.WARN)

app = TyperDI()

usage = "Usage: vsfsck <fs_image>"


def get_image_paths(
        images: Annotated[list[Path] | None, Argument(metavar="FS_IMAGE", show_default=False)] = None
    ) -> list[Path]:
    return images or []

def get_output(target: Annotated[Path|None, Option("--output", "-o", help="Check and repair a copy at this path")] = None) -> Path|None:
    return target

def get_check_only(check_only: Annotated[bool, Option("--check-only", "-n", help="Report only, never modify the image")] = False) -> bool:
    return check_only

def get_verbose(verbose: Annotated[bool, Option("--verbose", "-v")] = False) -> bool:
    return verbose


@app.command()
def check(
        images: list[Path] = Depends(get_image_paths),
        output: Path|None = Depends(get_output),
        check_only: bool = Depends(get_check_only),
        verbose: bool = Depends(get_verbose),
    ):
    """
    Check the VSFS image FS_IMAGE for consistency and repair what can be repaired

    The exit status is 0 whenever the image could be read, even if some
    errors could not be fixed; the report says what remains.
    """
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if len(images) != 1:
        print(usage)
        raise typer.Exit(1)

    source = images[0]
    try:
        if output:
            shutil.copy(source, output)
            source = output
        result = check_file(source, repair=not check_only)
    except OSError as e:
        print(f"vsfsck: {e}")
        print(usage)
        raise typer.Exit(1)

    print(format_report(result, color=sys.stdout.isatty()), end='')


if __name__ == "__main__":
    app()
