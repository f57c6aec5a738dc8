"""Tests for gh_client.py — gh api calls, response parsing, error mapping."""

import json
import subprocess
from unittest.mock import patch

import pytest


def _recording_gh_api(responses):
    """_gh_api stand-in returning canned (rc, stdout, stderr) by endpoint substring."""
    calls = []

    def fake_gh_api(args, timeout=15):
        calls.append(args)
        endpoint = args[0] if args else ""
        for pattern, resp in responses.items():
            if pattern in endpoint:
                return resp
        return (0, "{}", "")

    return fake_gh_api, calls


# ---------------------------------------------------------------------------
# _gh_api
# ---------------------------------------------------------------------------

class TestGhApi:
    @pytest.fixture(autouse=True)
    def _import(self):
        import importlib
        self.mod = importlib.import_module("gh_client")

    def test_timeout_maps_to_error_tuple(self):
        with patch.object(self.mod.subprocess, "run", side_effect=subprocess.TimeoutExpired("gh", 1)):
            assert self.mod._gh_api(["repos/o/r"]) == (-1, "", "timeout")

    def test_missing_binary_maps_to_error_tuple(self):
        with patch.object(self.mod.subprocess, "run", side_effect=FileNotFoundError("gh")):
            rc, _, stderr = self.mod._gh_api(["repos/o/r"])
        assert rc == -1
        assert "gh" in stderr


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

class TestReads:
    @pytest.fixture(autouse=True)
    def _import(self):
        import importlib
        self.mod = importlib.import_module("gh_client")
        self.client = self.mod.GitHubClient("owner", "repo")

    def test_list_commits(self):
        fake, calls = _recording_gh_api({"/commits": (0, "aaa\nbbb\n", "")})
        with patch.object(self.mod, "_gh_api", side_effect=fake):
            assert self.client.list_commits("5") == ["aaa", "bbb"]
        assert calls[0][0] == "repos/owner/repo/pulls/5/commits"
        assert "--paginate" in calls[0]

    def test_list_files_with_missing_patch(self):
        stdout = "\n".join([
            json.dumps({"filename": "a.py", "patch": "@@ -1 +1 @@\n+x"}),
            json.dumps({"filename": "logo.png", "patch": None}),
        ])
        fake, _ = _recording_gh_api({"/files": (0, stdout, "")})
        with patch.object(self.mod, "_gh_api", side_effect=fake):
            files = self.client.list_files("5")
        assert [f.filename for f in files] == ["a.py", "logo.png"]
        assert files[0].patch == "@@ -1 +1 @@\n+x"
        assert files[1].patch is None

    def test_compare_commits(self):
        body = json.dumps({
            "files": [{"filename": "a.py", "patch": "@@ -1 +1 @@\n+x", "status": "modified"}],
            "commits": [{"sha": "c1"}, {"sha": "c2"}],
        })
        fake, calls = _recording_gh_api({"/compare/": (0, body, "")})
        with patch.object(self.mod, "_gh_api", side_effect=fake):
            data = self.client.compare_commits("base1", "head2")
        assert calls[0][0] == "repos/owner/repo/compare/base1...head2"
        assert [f.filename for f in data["files"]] == ["a.py"]
        assert data["commits"] == ["c1", "c2"]

    def test_compare_without_files(self):
        fake, _ = _recording_gh_api({"/compare/": (0, json.dumps({"commits": []}), "")})
        with patch.object(self.mod, "_gh_api", side_effect=fake):
            assert self.client.compare_commits("a", "b") == {"files": [], "commits": []}

    def test_failed_read_raises(self):
        fake, _ = _recording_gh_api({"/compare/": (1, "", "HTTP 404: Not Found")})
        with patch.object(self.mod, "_gh_api", side_effect=fake):
            with pytest.raises(self.mod.GitHubApiError) as exc:
                self.client.compare_commits("a", "b")
        assert "404" in str(exc.value)

    def test_unparsable_compare_raises(self):
        fake, _ = _recording_gh_api({"/compare/": (0, "not json", "")})
        with patch.object(self.mod, "_gh_api", side_effect=fake):
            with pytest.raises(self.mod.GitHubApiError):
                self.client.compare_commits("a", "b")


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

class TestWrites:
    @pytest.fixture(autouse=True)
    def _import(self, tmp_path, monkeypatch):
        import importlib
        self.mod = importlib.import_module("gh_client")
        self.payload_path = tmp_path / "payload.json"
        monkeypatch.setattr(self.mod, "PAYLOAD_PATH", self.payload_path)
        self.client = self.mod.GitHubClient("owner", "repo")

    def test_review_comment_payload(self):
        fake, calls = _recording_gh_api({"/comments": (0, '{"id": 1}', "")})
        with patch.object(self.mod, "_gh_api", side_effect=fake):
            result = self.client.create_review_comment("5", "abc", "src/a.py", 3, "fix")
        assert result == {"id": 1}
        assert calls[0][0] == "repos/owner/repo/pulls/5/comments"
        assert "POST" in calls[0]
        payload = json.loads(self.payload_path.read_text())
        assert payload == {"commit_id": "abc", "path": "src/a.py", "position": 3, "body": "fix"}

    def test_review_payload(self):
        fake, calls = _recording_gh_api({"/reviews": (0, '{"id": 2}', "")})
        with patch.object(self.mod, "_gh_api", side_effect=fake):
            self.client.create_review("5", "summary", "COMMENT")
        assert calls[0][0] == "repos/owner/repo/pulls/5/reviews"
        payload = json.loads(self.payload_path.read_text())
        assert payload == {"body": "summary", "event": "COMMENT"}
        assert "comments" not in payload

    def test_failed_write_raises(self):
        fake, _ = _recording_gh_api({"/comments": (1, "", "422 Validation Failed")})
        with patch.object(self.mod, "_gh_api", side_effect=fake):
            with pytest.raises(self.mod.GitHubApiError):
                self.client.create_review_comment("5", "abc", "src/a.py", 99, "fix")
