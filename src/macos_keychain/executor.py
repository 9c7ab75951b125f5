"""Running the ``security`` tool.

The executor is split into three seams:

- :class:`Authorizer` decides whether a command may run at all.
- :class:`ProcessRunner` spawns the process and captures its outcome.
- :class:`CommandExecutor` ties them together, normalises trailing newlines
  and turns a non-zero exit into :class:`~macos_keychain.errors.ExecutionError`.
"""

from __future__ import annotations

import asyncio
import logging
import shlex
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from macos_keychain.errors import ExecutionError, PermissionDeniedError

if TYPE_CHECKING:
    from macos_keychain.config import Settings

logger = logging.getLogger(__name__)

# Flags whose following argument is a secret and must not be logged
_SECRET_FLAGS = frozenset({"-w", "-p"})


@dataclass(frozen=True)
class CommandOutcome:
    """Exit status and decoded output streams of one process run."""

    exit_code: int
    stdout: str
    stderr: str


def strip_trailing_newline(text: str) -> str:
    """Remove exactly one trailing ``\\n``, leaving other whitespace alone."""
    if text.endswith("\n"):
        return text[:-1]
    return text


def format_command(command: str, args: Sequence[str]) -> str:
    """Render a shell-style command line with secret values masked."""
    parts = [shlex.quote(command)]
    mask_next = False
    for arg in args:
        if mask_next:
            parts.append("'***'")
            mask_next = False
            continue
        parts.append(shlex.quote(arg))
        mask_next = arg in _SECRET_FLAGS
    return " ".join(parts)


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------

class Authorizer(ABC):
    """Decides whether an executable may be run."""

    @abstractmethod
    async def request_authorization(self, command: str) -> bool:
        """Return True if *command* may be executed."""


class AllowAllAuthorizer(Authorizer):
    """Grants every request."""

    async def request_authorization(self, command: str) -> bool:
        return True


class AllowListAuthorizer(Authorizer):
    """Grants only executables whose path appears in *allowed*."""

    def __init__(self, allowed: Iterable[str]) -> None:
        self._allowed = frozenset(allowed)

    async def request_authorization(self, command: str) -> bool:
        return command in self._allowed


def _ask_on_terminal(command: str) -> bool:
    answer = input(f"Allow running {command}? [y/N] ")
    return answer.strip().lower() in ("y", "yes")


class PromptAuthorizer(Authorizer):
    """Asks once per command and remembers the answer.

    Parameters
    ----------
    ask:
        Blocking callable returning the user's decision, run in the
        default executor.
        Defaults to a ``y/N`` prompt on the terminal.
    """

    def __init__(self, ask: Callable[[str], bool] = _ask_on_terminal) -> None:
        self._ask = ask
        self._decisions: dict[str, bool] = {}
        self._pending: dict[str, asyncio.Future[bool]] = {}

    async def request_authorization(self, command: str) -> bool:
        if command in self._decisions:
            return self._decisions[command]
        # concurrent callers share the one pending question
        pending = self._pending.get(command)
        if pending is None:
            loop = asyncio.get_running_loop()
            pending = loop.run_in_executor(None, self._ask, command)
            self._pending[command] = pending
        try:
            allowed = await asyncio.shield(pending)
        finally:
            if pending.done():
                self._pending.pop(command, None)
        self._decisions[command] = allowed
        return allowed


# ---------------------------------------------------------------------------
# Process spawning
# ---------------------------------------------------------------------------

class ProcessRunner(ABC):
    """Spawns an external program and captures its outcome."""

    @abstractmethod
    async def spawn(self, command: str, args: Sequence[str]) -> CommandOutcome:
        """Run *command* with *args* and wait for it to exit."""


class AsyncioProcessRunner(ProcessRunner):
    """Runs processes with ``asyncio.create_subprocess_exec``."""

    async def spawn(self, command: str, args: Sequence[str]) -> CommandOutcome:
        proc = await asyncio.create_subprocess_exec(
            command,
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            # communicate() drains both pipes and waits for exit together
            stdout, stderr = await proc.communicate()
        finally:
            if proc.returncode is None:
                logger.debug("Killing unfinished process %s", command)
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass
                await proc.wait()
        return CommandOutcome(
            exit_code=proc.returncode or 0,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )


# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------

class CommandExecutor:
    """Authorizes, runs and checks one external command per call.

    Parameters
    ----------
    runner:
        Process runner; defaults to :class:`AsyncioProcessRunner`.
    authorizer:
        Permission check performed before every spawn. Omitting it
        pre-grants every command (:class:`AllowAllAuthorizer`); use
        :func:`create_executor` for the configured policy.
    """

    def __init__(
        self,
        runner: ProcessRunner | None = None,
        authorizer: Authorizer | None = None,
    ) -> None:
        self.runner = runner if runner is not None else AsyncioProcessRunner()
        self.authorizer = authorizer if authorizer is not None else AllowAllAuthorizer()

    async def run(self, command: str, args: Sequence[str]) -> str:
        """Run *command* and return its stdout minus one trailing newline.

        Raises
        ------
        PermissionDeniedError:
            If the authorizer refuses *command*. Nothing is spawned.
        ExecutionError:
            If the process exits non-zero. The message is the process
            stderr minus one trailing newline.
        """
        if not await self.authorizer.request_authorization(command):
            logger.warning("Execution of %s was not authorized", command)
            raise PermissionDeniedError(command)

        logger.debug("Running %s", format_command(command, args))
        outcome = await self.runner.spawn(command, list(args))
        stdout = strip_trailing_newline(outcome.stdout)
        stderr = strip_trailing_newline(outcome.stderr)

        if outcome.exit_code != 0:
            logger.debug("%s %s exited with %d: %s", command, args[0] if args else "",
                         outcome.exit_code, stderr)
            raise ExecutionError(outcome.exit_code, stderr)
        return stdout


def create_authorizer(settings: Settings) -> Authorizer:
    """Build the authorizer selected by ``permissions.mode``."""
    mode = settings.permissions.mode
    if mode == "allow_all":
        return AllowAllAuthorizer()
    if mode == "prompt":
        return PromptAuthorizer()
    # the configured security tool is always permitted
    return AllowListAuthorizer([*settings.permissions.allowed_commands, settings.security.path])


def create_executor(settings: Settings) -> CommandExecutor:
    """Create a :class:`CommandExecutor` configured from *settings*."""
    return CommandExecutor(
        runner=AsyncioProcessRunner(),
        authorizer=create_authorizer(settings),
    )
