"""
comment_poster.py — Post review verdicts back to the pull request.

The poster only performs the write: deciding whether something is worth
posting happens in the driver. Every inline comment of a run anchors to
the same commit.
"""

DEFAULT_REVIEW_HEADER = "## Code Review"
DEFAULT_COMMENT_TAG = "<!-- ai-review-agent -->"


def format_comment_body(
    verdict: str,
    comment_tag: str = DEFAULT_COMMENT_TAG,
    header: str | None = None,
) -> str:
    """Prefix a verdict with our hidden marker (and an optional header)."""
    parts = [comment_tag]
    if header:
        parts.append(header)
        parts.append("")
    parts.append(verdict)
    return "\n".join(parts)


class CommentPoster:
    """Inline comments and summary reviews for one PR at one commit."""

    def __init__(self, github, pull_number: str, commit_id: str, dry_run: bool = False):
        self.github = github
        self.pull_number = pull_number
        self.commit_id = commit_id
        self.dry_run = dry_run

    def post(self, path: str, position: int, body: str) -> None:
        if self.dry_run:
            print(f"    [DRY RUN] Would comment on {path} at position {position} ({len(body)} chars)")
            return
        self.github.create_review_comment(
            self.pull_number, self.commit_id, path, position, body,
        )
        print(f"    Comment posted on {path} at position {position}")

    def post_summary(self, body: str) -> None:
        # COMMENT never approves or blocks the PR
        if self.dry_run:
            print(f"  [DRY RUN] Would post summary review ({len(body)} chars)")
            return
        self.github.create_review(self.pull_number, body, "COMMENT")
        print("  Summary review posted (event=COMMENT)")
