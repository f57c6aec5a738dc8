#!/usr/bin/env python3
"""
review-pr.py — Review a pull request diff unit by unit and post inline comments.

Pipeline: fetch the commit range → narrow it to the latest push → cut each
file patch into change units → ask the model about each unit → post the
non-empty verdicts anchored at their diff positions.

Units are handled one at a time, in file order. A failing unit is logged
and skipped; only a failure to fetch the range aborts the run.

Supports dry-run mode when ANTHROPIC_API_KEY is not set.
"""

import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))
from comment_poster import CommentPoster, format_comment_body
from config_loader import RunConfig, load_config, load_run_config
from diff_units import anchor_position, segment
from gh_client import GitHubClient
from range_narrower import narrow_range
from review_dispatcher import AnthropicTextGenerator, DryRunGenerator, ReviewDispatcher
from review_models import ChangeUnit, CommitRef, FileDiff, ReviewMode, RunSummary, UnitOutcome


# ---------------------------------------------------------------------------
# Range
# ---------------------------------------------------------------------------

def range_label(run_config: RunConfig) -> str:
    if run_config.base and run_config.head:
        return f"{run_config.base}...{run_config.head}"
    return f"{run_config.owner}/{run_config.repo}#{run_config.pull_number}"


def fetch_review_range(run_config: RunConfig, github) -> tuple[list[FileDiff], list[CommitRef]]:
    """Files and commits to review: base...head when both are set, else the whole PR."""
    if run_config.base and run_config.head:
        data = github.compare_commits(run_config.base, run_config.head)
        return data["files"], data["commits"]
    files = github.list_files(run_config.pull_number)
    commits = github.list_commits(run_config.pull_number)
    return files, commits


# ---------------------------------------------------------------------------
# Per-unit processing
# ---------------------------------------------------------------------------

def review_unit(
    unit: ChangeUnit, dispatcher: ReviewDispatcher, poster: CommentPoster, run_config: RunConfig,
) -> UnitOutcome:
    """Dispatch one unit and post its verdict. Never raises."""
    try:
        result = dispatcher.dispatch(unit.file, unit.text)
        if result.skipped:
            return UnitOutcome.SKIPPED
        if not result.verdict:
            print(f"    No issues in {unit.file} [{unit.start_position}-{unit.end_position}]")
            return UnitOutcome.SUPPRESSED
        body = format_comment_body(result.verdict, run_config.comment_tag)
        poster.post(unit.file, anchor_position(unit), body)
        return UnitOutcome.WOULD_POST if poster.dry_run else UnitOutcome.POSTED
    except Exception as e:
        print(f"  WARNING: Review of {unit.file} failed: {e}")
        return UnitOutcome.FAILED


def review_files(
    files: list[FileDiff], dispatcher: ReviewDispatcher, poster: CommentPoster,
    run_config: RunConfig, summary: RunSummary,
) -> None:
    for file in files:
        if not file.patch:
            print(f"  {file.filename} skipped: no textual patch")
            summary.record(UnitOutcome.SKIPPED, file.filename)
            continue

        units = segment(file.patch, file.filename, run_config.mode)
        if not units:
            print(f"  {file.filename}: no added lines, nothing to review")
            continue

        print(f"  {file.filename}: {len(units)} unit(s)")
        for unit in units:
            summary.record(review_unit(unit, dispatcher, poster, run_config), unit.file)


def build_pr_patch(files: list[FileDiff]) -> str:
    """All textual patches of the range, each under its file name."""
    parts = []
    for file in files:
        if file.patch:
            parts.append(f"### {file.filename}\n{file.patch}")
    return "\n\n".join(parts)


def review_whole_pr(
    files: list[FileDiff], dispatcher: ReviewDispatcher, poster: CommentPoster,
    run_config: RunConfig, summary: RunSummary,
) -> None:
    label = f"{len(files)} file(s)"
    try:
        result = dispatcher.dispatch(label, build_pr_patch(files))
        if result.skipped:
            summary.record(UnitOutcome.SKIPPED)
            return
        if not result.verdict:
            print("  No issues found in the pull request")
            summary.record(UnitOutcome.SUPPRESSED)
            return
        poster.post_summary(format_comment_body(
            result.verdict, run_config.comment_tag, run_config.review_header,
        ))
        summary.record(UnitOutcome.WOULD_POST if poster.dry_run else UnitOutcome.POSTED)
    except Exception as e:
        print(f"  WARNING: Pull request review failed: {e}")
        summary.record(UnitOutcome.FAILED, label)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def run_review(run_config: RunConfig, github, dispatcher: ReviewDispatcher) -> RunSummary:
    """Run the whole pipeline for one pull request.

    Raises whatever the range fetch raised; per-unit failures are folded
    into the returned summary instead.
    """
    print(f"=== Reviewing {range_label(run_config)} (mode: {run_config.mode.value}) ===")
    try:
        files, commits = fetch_review_range(run_config, github)
        files = narrow_range(files, commits, run_config.ignore_list, github.compare_commits)
    except Exception as e:
        print(f"ERROR: Could not fetch changes for {range_label(run_config)}")
        print(f"  {e}")
        raise

    if not files or not commits:
        print("No change found")
        return RunSummary(no_change=True)

    # Every comment of this run anchors to the same commit
    poster = CommentPoster(github, run_config.pull_number, commits[-1], dry_run=run_config.dry_run)
    summary = RunSummary()

    print(f"  {len(files)} file(s) to review at {commits[-1][:7]}")
    if run_config.mode == ReviewMode.PR:
        review_whole_pr(files, dispatcher, poster, run_config, summary)
    else:
        review_files(files, dispatcher, poster, run_config, summary)

    if summary.failed_files:
        print(f"  Failed: {', '.join(summary.failed_files)}")
    return summary


def build_dispatcher(run_config: RunConfig) -> ReviewDispatcher:
    if run_config.dry_run:
        print("=== DRY RUN MODE (no ANTHROPIC_API_KEY set or dry-run enabled) ===")
        generator = DryRunGenerator()
    else:
        generator = AnthropicTextGenerator(model=run_config.model)
    return ReviewDispatcher(
        generator,
        max_patch_length=run_config.max_patch_length,
        max_tokens=run_config.max_tokens,
        language=run_config.language,
    )


def write_step_summary(summary: RunSummary, run_config: RunConfig) -> None:
    summary_file = os.environ.get("GITHUB_STEP_SUMMARY", "")
    if not summary_file:
        return
    with open(summary_file, "a") as f:
        f.write(f"\n{run_config.review_header}{' (Dry Run)' if run_config.dry_run else ''}\n\n")
        f.write(f"- Mode: {run_config.mode.value}\n")
        f.write(f"- Result: {summary.describe()}\n")


def main():
    config = load_config()
    run_config = load_run_config(config)

    if not (run_config.owner and run_config.repo and run_config.pull_number):
        print("ERROR: GITHUB_OWNER, GITHUB_REPOSITORY_NAME and GITHUB_PR_NUMBER must be set.")
        sys.exit(1)

    github = GitHubClient(run_config.owner, run_config.repo)
    dispatcher = build_dispatcher(run_config)

    try:
        summary = run_review(run_config, github, dispatcher)
    except Exception as e:
        print(f"ERROR: Review aborted: {e}")
        sys.exit(1)

    write_step_summary(summary, run_config)
    print(f"=== Review Complete ({summary.describe()}) ===")


if __name__ == "__main__":
    main()
