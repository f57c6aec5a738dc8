"""
range_narrower.py — Decide which changed files a run should review.

On the first push the whole base...head range is reviewed. Once a PR has
two or more commits, only files touched by the latest push are kept, so
files reviewed on an earlier push are not commented on again.
"""

from typing import Callable

from review_models import CommitRef, FileDiff

# compare_commits(base, head) -> {"files": [FileDiff, ...], "commits": [sha, ...]}
CompareFn = Callable[[str, str], dict]


def parse_ignore_list(raw: str | None) -> list[str]:
    """Split a newline-separated ignore list. Names are matched exactly."""
    if not raw:
        return []
    names = (name.rstrip("\r") for name in raw.split("\n"))
    return [name for name in names if name.strip()]


def narrow_range(
    full_range_files: list[FileDiff],
    commits: list[CommitRef],
    ignore_list: list[str],
    compare_commits: CompareFn,
) -> list[FileDiff]:
    """Restrict full_range_files to the latest push and drop ignored names.

    The ignore list applies whether or not the range was narrowed.
    Errors from compare_commits propagate; a failed fetch ends the run.
    """
    files = list(full_range_files)

    if len(commits) >= 2:
        latest_push = compare_commits(commits[-2], commits[-1])
        pushed_names = {f.filename for f in latest_push.get("files", [])}
        files = [f for f in files if f.filename in pushed_names]
        print(f"  Narrowed to latest push {commits[-2][:7]}...{commits[-1][:7]}: {len(files)} file(s)")

    ignored = set(ignore_list)
    if ignored:
        kept = [f for f in files if f.filename not in ignored]
        dropped = len(files) - len(kept)
        if dropped:
            print(f"  Ignored {dropped} file(s) from the ignore list")
        files = kept

    return files
