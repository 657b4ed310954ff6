"""Auto-fix hand-off to an external agent.

After a submission with auto-fix requested, the orchestrator notifies a
downstream agent that a fresh review is waiting at the fixed ``latest.toml``
path. The notification is fire-and-forget: the agent runs in its own process,
submit never waits for it, and a failure to launch it is reported as a
warning rather than undoing the submission.

The agent itself is out of scope. What redline owns is the instruction it is
given. build_fix_prompt() renders it from the document text so any agent
(a CLI wrapper around an LLM, an IDE chat, a human) gets the same rules.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path

from redline_core.errors import HandoffError

logger = logging.getLogger(__name__)

# Environment variable through which the agent receives the document path.
REVIEW_PATH_ENV = "REDLINE_REVIEW"

_FIX_RULES = [
    "You are an expert code fixer. The user has submitted a code review and wants",
    "you to apply the requested fixes.",
    "",
    "Rules:",
    "1. Read the TOML review below carefully.",
    '2. For each comment with severity "must_fix", you MUST apply the fix.',
    '3. For comments with severity "suggestion", apply the fix if it makes sense.',
    '4. For "nitpick" and "question" items, mention them but do NOT change code unless asked.',
    "5. Show the exact file path, the original code, and the fixed code for each change.",
    "6. Use fenced code blocks with the language identifier for syntax highlighting.",
    "7. If you are unsure about a fix, explain your reasoning and ask for clarification.",
    "8. As you apply each fix, set resolved = true on the matching comment in the TOML file.",
    "9. Check the result for lint and type errors.",
]

_SUMMARY_RULES = [
    "Summarise the code review below for the author.",
    "Group the findings by severity (must_fix, suggestion, nitpick, question).",
    "State the reviewer's decision and how many files were marked as reviewed.",
]


def build_fix_prompt(document_text: str, extra_instructions: str = "") -> str:
    """Render the instruction an auto-fix agent receives for a review document."""
    lines = [*_FIX_RULES, "", "=== REDLINE REVIEW (TOML) ===", document_text.rstrip("\n"), "=== END OF REVIEW ==="]
    if extra_instructions.strip():
        lines += ["", f"Additional instructions from the user: {extra_instructions.strip()}"]
    return "\n".join(lines) + "\n"


def build_summary_prompt(document_text: str, question: str = "") -> str:
    lines = [*_SUMMARY_RULES, "", "=== REDLINE REVIEW (TOML) ===", document_text.rstrip("\n"), "=== END OF REVIEW ==="]
    if question.strip():
        lines += ["", f"User's additional question: {question.strip()}"]
    return "\n".join(lines) + "\n"


class AutoFixHandoff(ABC):
    """Something that can be told "a review is ready at this path"."""

    @abstractmethod
    def notify(self, document_path: Path) -> None:
        """Signal the agent. Raises HandoffError if the signal could not be sent."""


class NullHandoff(AutoFixHandoff):
    """Used when no agent is configured: every notification fails with a hint."""

    def notify(self, document_path: Path) -> None:
        raise HandoffError(
            "No auto-fix command configured. Set auto_fix_command in .redline.yml "
            "or REDLINE_AUTO_FIX_COMMAND, or run `redline fix --print-prompt`."
        )


class CommandHandoff(AutoFixHandoff):
    """Launches a configured command in the background.

    The command line is split with shlex; ``{review}`` placeholders are
    replaced by the document path, which is also exported as REDLINE_REVIEW.
    The child is not waited on.
    """

    def __init__(self, command: str, cwd: str | Path | None = None):
        self._command = command
        self._cwd = str(cwd) if cwd is not None else None

    def build_argv(self, document_path: Path) -> list[str]:
        try:
            argv = shlex.split(self._command)
        except ValueError as e:
            raise HandoffError(f"Could not parse auto_fix_command {self._command!r}: {e}.") from e
        if not argv:
            raise HandoffError("auto_fix_command is empty.")
        return [arg.replace("{review}", str(document_path)) for arg in argv]

    def notify(self, document_path: Path) -> None:
        argv = self.build_argv(document_path)
        env = {**os.environ, REVIEW_PATH_ENV: str(document_path)}
        try:
            process = subprocess.Popen(
                argv,
                cwd=self._cwd,
                env=env,
                stdin=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            raise HandoffError(f"Could not launch auto-fix command {argv[0]!r}: {e}") from e
        logger.info("Auto-fix agent started (pid %d): %s", process.pid, " ".join(argv))


def build_handoff(config: dict, cwd: str | Path | None = None) -> AutoFixHandoff:
    """Pick the hand-off implementation for a loaded config."""
    command = config.get("auto_fix_command")
    if command:
        return CommandHandoff(command, cwd=cwd)
    return NullHandoff()
