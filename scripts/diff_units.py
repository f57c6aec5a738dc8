"""
diff_units.py — Cut a per-file unified-diff patch into reviewable change units.

GitHub anchors review comments by *diff position*, not by source line: the
line just below the first "@@" hunk header is position 1, and every later
line (context, removal, addition, and further hunk headers) advances it by
one. Any "---"/"+++" file header lines above that first "@@" are not
counted. A patch with no hunk header at all is numbered from 1 at its
first line. All position math goes through diff_position() so there is
exactly one place that knows this convention.
"""

from review_models import ChangeUnit, ReviewMode


def hunk_offset(lines: list[str]) -> int:
    """Offset of the first "@@" line, or -1 when the patch has none."""
    for index, line in enumerate(lines):
        if line.startswith("@@"):
            return index
    return -1


def diff_position(line_index: int, first_hunk: int = 0) -> int:
    """Map a 0-based offset into patch.split("\\n") to a GitHub diff position.

    first_hunk is hunk_offset() of the same patch.
    """
    return line_index - first_hunk


def last_line_position(patch: str) -> int:
    """Position of the final line of a patch, where whole-file comments go."""
    lines = patch.split("\n")
    return diff_position(len(lines) - 1, hunk_offset(lines))


def is_added_line(line: str) -> bool:
    """True for '+' content lines. The '+++ b/path' file header does not count."""
    return line.startswith("+") and not line.startswith("+++")


def segment(patch: str, filename: str, mode: ReviewMode) -> list[ChangeUnit]:
    """Split a patch into change units according to mode.

    line:  each added line is a unit, start == end == its position.
    block: each maximal run of added lines is a unit. end_position is the
           position of the line after the run, or one past the last line
           when the run reaches the end of the patch.
    file:  the whole patch is one unit anchored at its last line.

    Only lines below the first hunk header are candidates. A patch without
    added lines yields no units in any mode.
    """
    if mode == ReviewMode.PR:
        raise ValueError("pr mode reviews whole patches; there is nothing to segment")

    lines = patch.split("\n")
    first_hunk = hunk_offset(lines)
    last_position = diff_position(len(lines) - 1, first_hunk)

    candidates = [is_added_line(line) and index > first_hunk for index, line in enumerate(lines)]
    if not any(candidates):
        return []

    if mode == ReviewMode.FILE:
        return [ChangeUnit(
            file=filename,
            start_position=last_position,
            end_position=last_position,
            lines=lines,
            mode=mode,
            last_position=last_position,
        )]

    units: list[ChangeUnit] = []
    run: list[str] = []
    run_start = 0

    for index, line in enumerate(lines):
        if candidates[index]:
            if mode == ReviewMode.LINE:
                position = diff_position(index, first_hunk)
                units.append(ChangeUnit(
                    file=filename,
                    start_position=position,
                    end_position=position,
                    lines=[line],
                    mode=mode,
                    last_position=last_position,
                ))
                continue
            if not run:
                run_start = index
            run.append(line)
        elif run:
            units.append(ChangeUnit(
                file=filename,
                start_position=diff_position(run_start, first_hunk),
                end_position=diff_position(index, first_hunk),
                lines=run,
                mode=mode,
                last_position=last_position,
            ))
            run = []

    # Flush a block that runs to the end of the patch
    if run:
        units.append(ChangeUnit(
            file=filename,
            start_position=diff_position(run_start, first_hunk),
            end_position=diff_position(len(lines), first_hunk),
            lines=run,
            mode=mode,
            last_position=last_position,
        ))

    return units


def anchor_position(unit: ChangeUnit) -> int:
    """Diff position a unit's comment is posted at.

    Blocks anchor at their end_position; an end-of-patch block is clamped to
    the last line, since GitHub rejects positions past the diff.
    """
    if unit.mode != ReviewMode.BLOCK:
        return unit.start_position
    if unit.last_position:
        return min(unit.end_position, unit.last_position)
    return unit.end_position
