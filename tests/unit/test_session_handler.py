"""Tests for the review session message handler."""

import json

import pytest

from change_review.core.analyzer import AnalysisEngine, PassRegistry
from change_review.core.diff_parser import parse_diff
from change_review.core.session_handler import SessionHandler, error_message


@pytest.fixture
def handler() -> SessionHandler:
    return SessionHandler()


async def load(handler: SessionHandler, diff: str, **extra) -> list[dict]:
    return await handler.handle({"type": "load_diff", "data": {"diff": diff, **extra}})


class TestLoadDiff:
    """Test the load_diff message."""

    @pytest.mark.asyncio
    async def test_replies_parsed_then_analysis(self, handler, multi_file_diff) -> None:
        parsed, analysis = await load(handler, multi_file_diff)

        assert parsed["type"] == "parsed"
        assert [f["name"] for f in parsed["data"]["files"]] == [
            "src/app.py",
            "docs/notes.md",
            "old.txt",
        ]
        assert parsed["data"]["stats"] == {"files": 3, "added": 4, "deleted": 2}

        assert analysis["type"] == "analysis"
        assert analysis["data"]["total"] == 1
        assert analysis["data"]["max_risk"] == "low"
        assert analysis["data"]["findings"][0] == {
            "pass": "deleted",
            "file": "src/app.py",
            "line": 3,
            "message": "Deleted function: old",
            "severity": "info",
            "risk": "low",
        }
        assert handler.session is not None

    @pytest.mark.asyncio
    async def test_skip_and_repo_dir(self, handler, deleted_function_diff, calc_repo) -> None:
        _, analysis = await load(
            handler, deleted_function_diff, repo_dir=str(calc_repo), skip=["blast_radius"]
        )
        (finding,) = analysis["data"]["findings"]
        assert finding["risk"] == "high"
        assert finding["severity"] == "error"

    @pytest.mark.asyncio
    async def test_malformed_diff(self, handler) -> None:
        (reply,) = await load(handler, "--- a/x\n+++ b/x\n@@ nope @@\n")
        assert reply["type"] == "error"
        assert "malformed hunk header" in reply["data"]["message"]
        assert handler.session is None

    @pytest.mark.asyncio
    async def test_missing_diff_field(self, handler) -> None:
        replies = await handler.handle({"type": "load_diff", "data": {}})
        assert replies == [error_message("invalid load_diff data")]

    @pytest.mark.asyncio
    async def test_reload_replaces_session(self, handler, multi_file_diff, no_newline_diff) -> None:
        await load(handler, multi_file_diff)
        await handler.handle({"type": "approve", "data": {"file_index": 0}})
        await load(handler, no_newline_diff)

        assert len(handler.session.files) == 1
        assert handler.session.counts().pending == 1

    @pytest.mark.asyncio
    async def test_uses_injected_engine(self, multi_file_diff) -> None:
        handler = SessionHandler(engine=AnalysisEngine(PassRegistry()))
        _, analysis = await load(handler, multi_file_diff)
        assert analysis["data"]["findings"] == []
        assert analysis["data"]["summary"] == "No issues found"


class TestDecisions:
    """Test approve, reject and undo messages."""

    @pytest.mark.asyncio
    async def test_before_load(self, handler) -> None:
        replies = await handler.handle({"type": "approve", "data": {"file_index": 0}})
        assert replies == [error_message("no diff loaded")]

    @pytest.mark.asyncio
    async def test_approve_reject_undo(self, handler, multi_file_diff) -> None:
        await load(handler, multi_file_diff)

        (reply,) = await handler.handle({"type": "approve", "data": {"file_index": 0}})
        assert reply == {"type": "decision", "data": {"file_index": 0, "decision": "approved"}}

        (reply,) = await handler.handle({"type": "reject", "data": {"file_index": 1}})
        assert reply["data"]["decision"] == "rejected"

        (reply,) = await handler.handle({"type": "undo", "data": {"file_index": 0}})
        assert reply["data"] == {"file_index": 0, "decision": "pending"}

    @pytest.mark.asyncio
    async def test_out_of_range_leaves_state_unchanged(self, handler, multi_file_diff) -> None:
        await load(handler, multi_file_diff)

        (reply,) = await handler.handle({"type": "approve", "data": {"file_index": 3}})
        assert reply["type"] == "error"
        assert "out of range" in reply["data"]["message"]
        assert handler.session.counts().pending == 3

    @pytest.mark.asyncio
    async def test_missing_file_index(self, handler, multi_file_diff) -> None:
        await load(handler, multi_file_diff)
        replies = await handler.handle({"type": "reject", "data": {}})
        assert replies == [error_message("invalid reject data")]


class TestFinish:
    """Test the finish message."""

    @pytest.mark.asyncio
    async def test_summary(self, handler, multi_file_diff) -> None:
        await load(handler, multi_file_diff)
        await handler.handle({"type": "approve", "data": {"file_index": 0}})
        await handler.handle({"type": "reject", "data": {"file_index": 2}})

        (reply,) = await handler.handle({"type": "finish"})
        summary = reply["data"]

        assert reply["type"] == "summary"
        assert (summary["approved"], summary["rejected"], summary["pending"]) == (1, 1, 1)
        assert summary["files"] == [
            {"name": "src/app.py", "decision": "approved"},
            {"name": "docs/notes.md", "decision": "pending"},
            {"name": "old.txt", "decision": "rejected"},
        ]
        assert [f.name() for f in parse_diff(summary["patch"]).files] == ["src/app.py"]
        assert summary["commit_message"].startswith("Update src/app.py\n")

    @pytest.mark.asyncio
    async def test_finish_before_load(self, handler) -> None:
        replies = await handler.handle({"type": "finish", "data": {}})
        assert replies == [error_message("no diff loaded")]


class TestMessageFormat:
    """Test envelope handling."""

    @pytest.mark.asyncio
    async def test_unknown_type(self, handler) -> None:
        replies = await handler.handle({"type": "rebase"})
        assert replies == [error_message("unknown message type: rebase")]

    @pytest.mark.asyncio
    async def test_missing_type(self, handler) -> None:
        replies = await handler.handle({"data": {}})
        assert replies == [error_message("invalid message format")]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ["not json", "[1, 2]", b"\xff\xfe"])
    async def test_handle_raw_rejects_bad_payloads(self, handler, raw) -> None:
        replies = await handler.handle_raw(raw)
        assert replies == [error_message("invalid message format")]

    @pytest.mark.asyncio
    async def test_handle_raw_decodes_json(self, handler, no_newline_diff) -> None:
        raw = json.dumps({"type": "load_diff", "data": {"diff": no_newline_diff}})
        replies = await handler.handle_raw(raw)
        assert [r["type"] for r in replies] == ["parsed", "analysis"]
