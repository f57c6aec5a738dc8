"""
review_models.py — Types shared by the diff-unit review pipeline.

FileDiff and commit SHAs come from GitHub; ChangeUnit is built by
diff_units.py and consumed once by the dispatcher. Nothing here outlives
a single run.
"""

from dataclasses import dataclass, field
from enum import Enum

CommitRef = str


class ReviewMode(str, Enum):
    """How a patch is cut into reviewable units."""

    LINE = "line"  # one unit per added line
    BLOCK = "block"  # one unit per run of added lines
    FILE = "file"  # one unit per file patch
    PR = "pr"  # every patch in one request, one summary review


class UnitOutcome(str, Enum):
    """What happened to a single unit."""

    POSTED = "posted"
    WOULD_POST = "would_post"  # dry run: verdict found, nothing sent
    SUPPRESSED = "suppressed"  # model found no issues
    SKIPPED = "skipped"  # empty or over the patch budget
    FAILED = "failed"


@dataclass
class FileDiff:
    """One changed file as reported by GitHub. patch is None for binary/renamed-only files."""

    filename: str
    patch: str | None = None


@dataclass
class ChangeUnit:
    """An addressable slice of a file patch.

    Positions are GitHub diff positions (see diff_units.diff_position).
    """

    file: str
    start_position: int
    end_position: int
    lines: list[str]
    mode: ReviewMode = ReviewMode.LINE
    last_position: int = 0  # position of the patch's final line

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


@dataclass
class DispatchResult:
    """Dispatcher answer for one unit. verdict None means nothing to post."""

    verdict: str | None = None
    skipped: bool = False


@dataclass
class RunSummary:
    """Per-run fold of unit outcomes."""

    no_change: bool = False
    posted: int = 0
    would_post: int = 0
    suppressed: int = 0
    skipped: int = 0
    failed: int = 0
    failed_files: list[str] = field(default_factory=list)

    def record(self, outcome: UnitOutcome, filename: str = "") -> None:
        if outcome == UnitOutcome.POSTED:
            self.posted += 1
        elif outcome == UnitOutcome.WOULD_POST:
            self.would_post += 1
        elif outcome == UnitOutcome.SUPPRESSED:
            self.suppressed += 1
        elif outcome == UnitOutcome.SKIPPED:
            self.skipped += 1
        elif outcome == UnitOutcome.FAILED:
            self.failed += 1
            if filename and filename not in self.failed_files:
                self.failed_files.append(filename)

    @property
    def total(self) -> int:
        return self.posted + self.would_post + self.suppressed + self.skipped + self.failed

    def describe(self) -> str:
        if self.no_change:
            return "no change"
        posted = f"Posted {self.posted}"
        if self.would_post:
            posted += f", would post {self.would_post}"
        return (
            f"{posted}, suppressed {self.suppressed}, "
            f"skipped {self.skipped}, failed {self.failed}"
        )
