"""Message-level driver for an interactive review session.

This module implements the SessionHandler class that a transport (a
WebSocket endpoint, a stdio loop) feeds one inbound message at a time:
1. ``load_diff``: parse the diff and run analysis, reply ``parsed`` then ``analysis``
2. ``approve`` / ``reject`` / ``undo``: update one file, reply ``decision``
3. ``finish``: reply ``summary`` with counts, per-file decisions, the
   filtered patch and a commit message

Every failure is turned into an ``error`` message; the handler never raises
for bad client input.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import structlog
from pydantic import BaseModel, Field, ValidationError

from change_review.core.analyzer import AnalysisEngine
from change_review.core.diff_parser import parse_diff
from change_review.core.review import ReviewSession
from change_review.errors import (
    DecisionStateError,
    DiffParseError,
    ProtocolError,
    SessionNotLoadedError,
)
from change_review.models.report import (
    AnalysisReport,
    DecisionRecord,
    FileDecisionRecord,
    ParsedReport,
    SessionSummaryRecord,
)
from change_review.utils.logging import LogEventNames

log = structlog.get_logger()

Message = dict[str, Any]


class Envelope(BaseModel):
    """Wire envelope shared by inbound and outbound messages."""

    type: str
    data: dict[str, Any] | None = None


class LoadDiffRequest(BaseModel):
    diff: str
    repo_dir: str | None = None
    skip: list[str] = Field(default_factory=list)


class DecisionRequest(BaseModel):
    file_index: int


def _message(kind: str, data: BaseModel | dict[str, Any]) -> Message:
    if isinstance(data, BaseModel):
        data = data.model_dump(by_alias=True, exclude_none=True)
    return {"type": kind, "data": data}


def error_message(text: str) -> Message:
    return {"type": "error", "data": {"message": text}}


class SessionHandler:
    """Protocol state machine for one review session.

    Example:
        handler = SessionHandler()
        replies = await handler.handle({"type": "load_diff", "data": {"diff": text}})
        replies = await handler.handle({"type": "approve", "data": {"file_index": 0}})
    """

    def __init__(self, engine: AnalysisEngine | None = None) -> None:
        self._engine = engine or AnalysisEngine()
        self._session: ReviewSession | None = None

    @property
    def session(self) -> ReviewSession | None:
        return self._session

    async def handle_raw(self, raw: str | bytes) -> list[Message]:
        """Decode a JSON message and handle it."""
        try:
            payload = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return [error_message("invalid message format")]
        if not isinstance(payload, dict):
            return [error_message("invalid message format")]
        return await self.handle(payload)

    async def handle(self, payload: Message) -> list[Message]:
        """Handle one inbound message and return the outbound replies."""
        try:
            envelope = Envelope.model_validate(payload)
        except ValidationError:
            return [error_message("invalid message format")]

        log.debug(LogEventNames.REQUEST_RECEIVED, type=envelope.type)
        data = envelope.data or {}

        try:
            match envelope.type:
                case "load_diff":
                    return await self._load_diff(data)
                case "approve":
                    return [self._decide(data, "approve")]
                case "reject":
                    return [self._decide(data, "reject")]
                case "undo":
                    return [self._decide(data, "undo")]
                case "finish":
                    return [self._finish()]
                case _:
                    raise ProtocolError(f"unknown message type: {envelope.type}")
        except (ProtocolError, DiffParseError, DecisionStateError, SessionNotLoadedError) as e:
            log.info(LogEventNames.REQUEST_FAILED, type=envelope.type, error=str(e))
            return [error_message(str(e))]

    async def _load_diff(self, data: dict[str, Any]) -> list[Message]:
        try:
            request = LoadDiffRequest.model_validate(data)
        except ValidationError as e:
            raise ProtocolError("invalid load_diff data") from e

        diff_set = parse_diff(request.diff)
        repo_root = Path(request.repo_dir) if request.repo_dir else None

        # Passes read files and walk the repository; keep the event loop free
        results = await asyncio.to_thread(
            self._engine.run, diff_set, repo_root, request.skip
        )
        self._session = ReviewSession(diff_set, results)

        return [
            _message("parsed", ParsedReport.from_diff_set(diff_set)),
            _message("analysis", AnalysisReport.from_results(results).to_wire()),
        ]

    def _require_session(self) -> ReviewSession:
        if self._session is None:
            raise SessionNotLoadedError("no diff loaded")
        return self._session

    def _decide(self, data: dict[str, Any], action: str) -> Message:
        session = self._require_session()
        try:
            request = DecisionRequest.model_validate(data)
        except ValidationError as e:
            raise ProtocolError(f"invalid {action} data") from e

        getattr(session, action)(request.file_index)
        record = DecisionRecord(
            file_index=request.file_index,
            decision=session.decision(request.file_index).value,
        )
        return _message("decision", record)

    def _finish(self) -> Message:
        session = self._require_session()
        counts = session.counts()
        summary = SessionSummaryRecord(
            approved=counts.approved,
            rejected=counts.rejected,
            pending=counts.pending,
            files=[
                FileDecisionRecord(name=file.name(), decision=decision.value)
                for file, decision in zip(session.files, session.decisions(), strict=True)
            ],
            patch=session.generate_patch(),
            commit_message=session.generate_commit_message(),
        )
        return _message("summary", summary)
