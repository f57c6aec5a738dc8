"""
gh_client.py — Thin GitHub REST wrapper over the `gh api` CLI.

Reads (commit lists, file lists, compares) raise GitHubApiError on any
failure so the caller can abort the run. Writes raise as well; the driver
decides whether a failed write is fatal.
"""

import json
import subprocess
from pathlib import Path

from review_models import CommitRef, FileDiff

PAYLOAD_PATH = Path("/tmp/review-agent-payload.json")


class GitHubApiError(RuntimeError):
    """A `gh api` call failed or returned something we could not read."""

    def __init__(self, endpoint: str, detail: str):
        super().__init__(f"gh api {endpoint} failed: {detail}")
        self.endpoint = endpoint
        self.detail = detail


def _gh_api(args: list[str], timeout: int = 15) -> tuple[int, str, str]:
    """Run gh api command."""
    try:
        result = subprocess.run(
            ["gh", "api"] + args,
            capture_output=True, text=True, timeout=timeout,
        )
        return result.returncode, result.stdout, result.stderr
    except subprocess.TimeoutExpired:
        return -1, "", "timeout"
    except (OSError, subprocess.SubprocessError) as e:
        return -1, "", str(e)


def _file_diff(data: dict) -> FileDiff:
    return FileDiff(filename=data["filename"], patch=data.get("patch"))


class GitHubClient:
    """Pull request reads and review writes for one repository."""

    def __init__(self, owner: str, repo: str, timeout: int = 30):
        self.owner = owner
        self.repo = repo
        self.timeout = timeout

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"

    def _call(self, endpoint: str, *extra: str) -> str:
        rc, stdout, stderr = _gh_api([endpoint, *extra], timeout=self.timeout)
        if rc != 0:
            raise GitHubApiError(endpoint, stderr.strip()[:200] or f"exit code {rc}")
        return stdout

    def _post(self, endpoint: str, payload: dict) -> dict:
        PAYLOAD_PATH.write_text(json.dumps(payload, ensure_ascii=False))
        stdout = self._call(endpoint, "--input", str(PAYLOAD_PATH), "--method", "POST")
        try:
            return json.loads(stdout) if stdout.strip() else {}
        except json.JSONDecodeError as e:
            raise GitHubApiError(endpoint, f"invalid JSON response ({e})") from e

    # -- reads ---------------------------------------------------------------

    def list_commits(self, pull_number: str) -> list[CommitRef]:
        """Commit SHAs of a PR, oldest first."""
        endpoint = f"repos/{self.slug}/pulls/{pull_number}/commits"
        stdout = self._call(endpoint, "--paginate", "--jq", ".[].sha")
        return [sha.strip() for sha in stdout.split("\n") if sha.strip()]

    def list_files(self, pull_number: str) -> list[FileDiff]:
        """Changed files of a PR with their patches."""
        endpoint = f"repos/{self.slug}/pulls/{pull_number}/files"
        stdout = self._call(endpoint, "--paginate", "--jq", ".[] | {filename, patch} | @json")
        files = []
        for line in stdout.split("\n"):
            if not line.strip():
                continue
            try:
                files.append(_file_diff(json.loads(line)))
            except (json.JSONDecodeError, KeyError) as e:
                raise GitHubApiError(endpoint, f"unreadable file entry ({e})") from e
        return files

    def compare_commits(self, base: str, head: str) -> dict:
        """Files and commits between base and head.

        Returns {"files": [FileDiff, ...], "commits": [sha, ...]}.
        """
        endpoint = f"repos/{self.slug}/compare/{base}...{head}"
        stdout = self._call(endpoint)
        try:
            data = json.loads(stdout)
            return {
                "files": [_file_diff(f) for f in data.get("files") or []],
                "commits": [c["sha"] for c in data.get("commits") or []],
            }
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            raise GitHubApiError(endpoint, f"unreadable compare response ({e})") from e

    # -- writes --------------------------------------------------------------

    def create_review_comment(
        self, pull_number: str, commit_id: str, path: str, position: int, body: str,
    ) -> dict:
        """Post an inline comment anchored at a diff position."""
        return self._post(f"repos/{self.slug}/pulls/{pull_number}/comments", {
            "commit_id": commit_id,
            "path": path,
            "position": position,
            "body": body,
        })

    def create_review(self, pull_number: str, body: str, event: str = "COMMENT") -> dict:
        """Post a top-level review with no inline comments."""
        return self._post(f"repos/{self.slug}/pulls/{pull_number}/reviews", {
            "body": body,
            "event": event,
        })
