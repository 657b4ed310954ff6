"""TOML serialization of review documents.

The document is written by hand rather than through a generic TOML writer
because the layout is part of the hand-off contract with fix agents: fixed
table order, ``[[comments]]`` in insertion order, ``endLine`` omitted when it
equals ``line``, ``codeContext`` omitted when absent, timestamps unquoted.
Reading goes through the standard ``tomllib`` parser, so anything we write
must also be valid TOML.

Strings containing a newline are written as multi-line basic strings. The
opening delimiter is followed by a newline (which TOML trims) and the closing
delimiter follows the last character directly, so no newline is added on
the way back in.
"""

from __future__ import annotations

import re
import tomllib
from datetime import date, datetime, time

from redline_core.models import (
    CommentSeverity,
    FileStatus,
    ReviewComment,
    ReviewDecision,
    ReviewDocument,
    ReviewedFile,
    ReviewStats,
)

_SHORT_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\b": "\\b",
    "\t": "\\t",
    "\n": "\\n",
    "\f": "\\f",
    "\r": "\\r",
}


def _escape(value: str, multiline: bool) -> str:
    out = []
    for ch in value:
        if ch == "\n" and multiline:
            out.append(ch)
        elif ch in _SHORT_ESCAPES:
            out.append(_SHORT_ESCAPES[ch])
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\u{ord(ch):04X}")
        else:
            out.append(ch)
    return "".join(out)


def toml_string(value: str) -> str:
    """Encode as a basic string, or a multi-line basic string if it has newlines."""
    if "\n" in value:
        return '"""\n' + _escape(value, multiline=True) + '"""'
    return '"' + _escape(value, multiline=False) + '"'


# RFC 3339 date-time as TOML accepts it: "T" separator, offset in hours and minutes.
_DATETIME_RE = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?([+-]\d{2}:\d{2})?")


def toml_datetime(value: str) -> str:
    """Timestamps are written bare when they read back as the same string.

    Anything else (basic ISO forms, "Z" suffix, truncated fractions) is quoted,
    which keeps the text intact on the way back in.
    """
    if not _DATETIME_RE.fullmatch(value):
        return toml_string(value)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return toml_string(value)
    if parsed.isoformat() != value:
        return toml_string(value)
    return value


def toml_bool(value: bool) -> str:
    return "true" if value else "false"


def dump_document(review: ReviewDocument) -> str:
    lines = [
        "# Redline review",
        f"# Generated at {review.timestamp}",
        "",
        "[review]",
        f"id = {toml_string(review.id)}",
        f"timestamp = {toml_datetime(review.timestamp)}",
        f"baseRef = {toml_string(review.base_ref)}",
        f"headRef = {toml_string(review.head_ref)}",
        f"decision = {toml_string(ReviewDecision(review.decision).value)}",
        f"summary = {toml_string(review.summary)}",
        "",
        "[stats]",
        f"filesChanged = {review.stats.files_changed}",
        f"filesReviewed = {review.stats.files_reviewed}",
        f"totalComments = {review.stats.total_comments}",
        f"mustFix = {review.stats.must_fix}",
        f"suggestions = {review.stats.suggestions}",
        f"nitpicks = {review.stats.nitpicks}",
        f"questions = {review.stats.questions}",
        "",
    ]

    for comment in review.comments:
        lines.append("[[comments]]")
        lines.append(f"file = {toml_string(comment.file)}")
        lines.append(f"line = {comment.line}")
        if comment.end_line is not None and comment.end_line != comment.line:
            lines.append(f"endLine = {comment.end_line}")
        lines.append(f"severity = {toml_string(CommentSeverity(comment.severity).value)}")
        lines.append(f"body = {toml_string(comment.body)}")
        if comment.code_context is not None:
            lines.append(f"codeContext = {toml_string(comment.code_context)}")
        lines.append(f"resolved = {toml_bool(comment.resolved)}")
        lines.append(f"timestamp = {toml_datetime(comment.timestamp)}")
        lines.append("")

    for file in review.reviewed_files:
        lines.append("[[reviewedFiles]]")
        lines.append(f"path = {toml_string(file.path)}")
        lines.append(f"status = {toml_string(FileStatus(file.status).value)}")
        lines.append(f"reviewed = {toml_bool(file.reviewed)}")
        lines.append("")

    return "\n".join(lines)


def _as_text(value) -> str:
    # tomllib turns bare timestamps into datetime objects.
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def load_document(text: str) -> ReviewDocument:
    """Parse a document produced by dump_document().

    The format carries no comment ids; parsed comments are numbered by their
    position in the document (``comment-1``, ``comment-2``, ...).
    Raises ValueError for text that is not a review document.
    """
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Not a valid review document: {e}") from e

    review = data.get("review")
    if not isinstance(review, dict):
        raise ValueError("Not a valid review document: missing [review] table.")

    stats = data.get("stats", {})
    try:
        comments = tuple(
            ReviewComment(
                id=f"comment-{i}",
                file=c["file"],
                line=int(c["line"]),
                end_line=int(c["endLine"]) if "endLine" in c else None,
                severity=CommentSeverity(c["severity"]),
                body=c.get("body", ""),
                code_context=c.get("codeContext"),
                resolved=bool(c.get("resolved", False)),
                timestamp=_as_text(c.get("timestamp", "")),
            )
            for i, c in enumerate(data.get("comments", []), 1)
        )
        reviewed_files = tuple(
            ReviewedFile(path=f["path"], status=FileStatus(f["status"]), reviewed=bool(f.get("reviewed", False)))
            for f in data.get("reviewedFiles", [])
        )
        return ReviewDocument(
            id=review["id"],
            timestamp=_as_text(review["timestamp"]),
            base_ref=review.get("baseRef", ""),
            head_ref=review.get("headRef", ""),
            decision=ReviewDecision(review["decision"]),
            summary=review.get("summary", ""),
            stats=ReviewStats(
                files_changed=stats.get("filesChanged", 0),
                files_reviewed=stats.get("filesReviewed", 0),
                total_comments=stats.get("totalComments", 0),
                must_fix=stats.get("mustFix", 0),
                suggestions=stats.get("suggestions", 0),
                nitpicks=stats.get("nitpicks", 0),
                questions=stats.get("questions", 0),
            ),
            comments=comments,
            reviewed_files=reviewed_files,
        )
    except KeyError as e:
        raise ValueError(f"Not a valid review document: missing field {e}.") from e
