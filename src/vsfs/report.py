"""Human readable rendering of checker results."""
from typing import TYPE_CHECKING

from .findings import Category, FindingLog
from .checker import RunResult

if TYPE_CHECKING:
    from rich.text import Text


# validators that hunt for bad blocks say so when they find none
_clean_status = {
    Category.duplicate: "NONE FOUND",
    Category.bad_block: "NONE FOUND",
}


def _status(log: FindingLog, category: Category, recheck: bool) -> 'Text':
    from rich.text import Text

    if log.is_clean(category):
        return Text(_clean_status.get(category, "OK"), style="green")
    return Text("ERRORS REMAIN" if recheck else "ERRORS FOUND", style="bold red")


def format_pass(log: FindingLog, recheck: bool = False) -> list['Text']:
    """Each finding of a validation pass followed by the per-validator summary"""
    from rich.text import Text

    lines = [Text(str(f), style="red") for f in log]
    lines.append(Text())
    lines.append(Text("File system re-check summary:" if recheck else "File system check summary:", style="bold"))
    for category in Category:
        line = Text(f"{category.value}: ")
        line.append_text(_status(log, category, recheck))
        lines.append(line)
    return lines


def format_report(result: RunResult, color: bool = False) -> str:
    """
    Render a whole run: the first pass, and if a repair happened, how many
    problems it fixed, the re-check pass and a before/after comparison.
    """
    from rich.console import Console
    from rich.text import Text
    from io import StringIO

    lines = [Text("Checking VSFS file system consistency...")]
    lines += format_pass(result.first)
    lines += [Text(), Text(f"Total errors found: {result.original_errors}")]

    if not result.original_errors:
        lines += [Text(), Text("No errors found. File system is consistent.", style="green")]
    elif not result.repaired:
        lines += [Text(), Text("Check only, no repairs attempted.", style="yellow")]
    else:
        assert result.repairs is not None and result.second is not None
        lines += [
            Text(),
            Text("Attempting to fix errors..."),
            Text(f"Errors fixed: {len(result.repairs)}"),
            Text(),
            Text("Re-checking file system for remaining errors..."),
        ]
        lines += format_pass(result.second, recheck=True)
        lines += [
            Text(),
            Text(f"Original errors: {result.original_errors}"),
            Text(f"Remaining errors: {result.remaining_errors}"),
            Text(),
        ]
        if result.remaining_errors:
            lines.append(Text(
                "Some errors could not be fixed automatically. Manual intervention may be required.",
                style="bold yellow"
            ))
        else:
            lines.append(Text("All errors successfully fixed! File system is now consistent.", style="green"))

    buffer = StringIO()
    console = Console(file=buffer, force_terminal=color, no_color=not color, soft_wrap=True)
    for line in lines:
        console.print(line)
    return buffer.getvalue()
