"""
config_loader.py — Load and merge project configuration.

Configuration is resolved in this order (later overrides earlier):
1. Built-in defaults (defaults/config.yaml in the action repo)
2. Project config (.github/review-agent/config.yaml in the consuming repo)
3. Environment variable overrides

load_run_config() then folds the merged config and the PR identity from
the environment into a RunConfig, the only thing the pipeline reads.
"""

import os
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path

try:
    import yaml
except ImportError:
    # pyyaml not yet installed — happens during action setup
    yaml = None

from range_narrower import parse_ignore_list
from review_models import ReviewMode


@dataclass
class RunConfig:
    """Everything one pipeline run needs, resolved up front."""

    owner: str
    repo: str
    pull_number: str
    base: str | None = None
    head: str | None = None
    ignore_list: list[str] = field(default_factory=list)
    max_patch_length: int | None = None
    mode: ReviewMode = ReviewMode.FILE
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 1000
    language: str = "Korean"
    comment_tag: str = "<!-- ai-review-agent -->"
    review_header: str = "## Code Review"
    dry_run: bool = False


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base. Override wins for leaf values."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config() -> dict:
    """Load configuration from defaults + project config + env overrides.

    Environment variables:
        REVIEW_AGENT_CONFIG: Path to project config (relative to repo root)
        REVIEW_AGENT_ACTION_PATH: Path to the action's own directory
        REVIEW_AGENT_MODEL, REVIEW_AGENT_MAX_TOKENS, REVIEW_AGENT_MODE,
        REVIEW_AGENT_LANGUAGE, MAX_PATCH_LENGTH: review overrides
    """
    if yaml is None:
        print("ERROR: pyyaml is required. Install with: pip install pyyaml")
        sys.exit(1)

    # 1. Load built-in defaults from the action repo
    action_path = Path(os.environ.get("REVIEW_AGENT_ACTION_PATH", Path(__file__).parent.parent))
    defaults_path = action_path / "defaults" / "config.yaml"

    config = {}
    if defaults_path.exists():
        config = yaml.safe_load(defaults_path.read_text(encoding="utf-8")) or {}

    # 2. Load project-specific config from the consuming repo
    repo_root = _find_repo_root()
    config_rel_path = os.environ.get("REVIEW_AGENT_CONFIG", ".github/review-agent/config.yaml")
    project_config_path = repo_root / config_rel_path

    if project_config_path.exists():
        project_config = yaml.safe_load(project_config_path.read_text(encoding="utf-8")) or {}
        config = _deep_merge(config, project_config)
        print(f"  Loaded project config from {config_rel_path}")
    else:
        print(f"  No project config at {config_rel_path} — using defaults")

    # 3. Apply environment variable overrides
    return apply_env_overrides(config, os.environ)


def apply_env_overrides(config: dict, environ) -> dict:
    """Layer REVIEW_AGENT_* and MAX_PATCH_LENGTH overrides onto config."""
    review = dict(config.get("review", {}))
    config = {**config, "review": review}
    if environ.get("REVIEW_AGENT_MODEL"):
        review["model"] = environ["REVIEW_AGENT_MODEL"]
    if environ.get("REVIEW_AGENT_MAX_TOKENS"):
        review["max_tokens"] = int(environ["REVIEW_AGENT_MAX_TOKENS"])
    if environ.get("REVIEW_AGENT_MODE"):
        review["mode"] = environ["REVIEW_AGENT_MODE"].strip().lower()
    if environ.get("REVIEW_AGENT_LANGUAGE"):
        review["language"] = environ["REVIEW_AGENT_LANGUAGE"]
    if environ.get("MAX_PATCH_LENGTH", "").strip():
        review["max_patch_length"] = int(environ["MAX_PATCH_LENGTH"])
    return config


def load_run_config(config: dict, environ=None) -> RunConfig:
    """Build the RunConfig from merged config and the Actions environment.

    PR identity: GITHUB_OWNER, GITHUB_REPOSITORY_NAME (or GITHUB_REPOSITORY
    as owner/name), GITHUB_PR_NUMBER (or PR_NUMBER). Optional range:
    GITHUB_BASE_COMMIT, GITHUB_HEAD_COMMIT. Ignore list: IGNORE or ignore.
    """
    environ = os.environ if environ is None else environ
    review = config.get("review", {})
    branding = config.get("branding", {})

    owner = environ.get("GITHUB_OWNER", "")
    repo = environ.get("GITHUB_REPOSITORY_NAME", "")
    if (not owner or not repo) and "/" in environ.get("GITHUB_REPOSITORY", ""):
        slug_owner, slug_repo = environ["GITHUB_REPOSITORY"].split("/", 1)
        owner = owner or slug_owner
        repo = repo or slug_repo

    max_patch_length = review.get("max_patch_length")
    ignore_raw = environ.get("IGNORE") or environ.get("ignore") or ""
    ignore_list = parse_ignore_list(ignore_raw) or list(config.get("files", {}).get("ignore", []))

    return RunConfig(
        owner=owner,
        repo=repo,
        pull_number=environ.get("GITHUB_PR_NUMBER") or environ.get("PR_NUMBER", ""),
        base=environ.get("GITHUB_BASE_COMMIT") or None,
        head=environ.get("GITHUB_HEAD_COMMIT") or None,
        ignore_list=ignore_list,
        max_patch_length=int(max_patch_length) if max_patch_length is not None else None,
        mode=ReviewMode(review.get("mode", ReviewMode.FILE.value)),
        model=review.get("model", RunConfig.model),
        max_tokens=int(review.get("max_tokens", RunConfig.max_tokens)),
        language=review.get("language", RunConfig.language),
        comment_tag=branding.get("comment_tag", RunConfig.comment_tag),
        review_header=branding.get("review_header", RunConfig.review_header),
        dry_run=(
            environ.get("REVIEW_AGENT_DRY_RUN", "false").lower() == "true"
            or not environ.get("ANTHROPIC_API_KEY", "")
        ),
    )


def _find_repo_root() -> Path:
    """Find the Git repository root."""
    # In GitHub Actions, GITHUB_WORKSPACE is the repo root
    workspace = os.environ.get("GITHUB_WORKSPACE")
    if workspace:
        return Path(workspace)

    # Fall back to git rev-parse
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            capture_output=True, text=True, timeout=5,
        )
        if result.returncode == 0:
            return Path(result.stdout.strip())
    except (OSError, subprocess.SubprocessError):
        pass

    # Last resort: current directory
    return Path.cwd()
