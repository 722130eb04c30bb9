"""Run external storage tools and interpret what they print.

Every model funnels its subprocess calls through this module so that the
(exit status, stdout, stderr) -> success / value / error decision is made in
one place.
"""
import re
import shlex
import signal
import subprocess
import tempfile
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from zfsctl.core.config import get_config
from zfsctl.core.errors import CommandError
from zfsctl.core.logger import get_logger

logger = get_logger(__name__)


@dataclass
class CommandResult:
    """Outcome of one external command."""

    cmd: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    mock: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Combined output, stdout first."""
        return self.stdout + self.stderr

    @property
    def lines(self) -> List[str]:
        """Non-empty stdout lines without trailing newlines."""
        return [line for line in self.stdout.splitlines() if line.strip()]


def quiet(result: CommandResult) -> bool:
    """Success predicate for commands that print nothing when they work."""
    return not result.output.strip()


def run_command(
    cmd: Sequence[str],
    merge_stderr: bool = True,
    readonly: bool = False,
) -> CommandResult:
    """Run a command and capture its output.

    Args:
        cmd: argv to run
        merge_stderr: Fold stderr into stdout (combined output)
        readonly: Command only queries state; it still runs in mock mode

    Returns:
        CommandResult with decoded output

    Raises:
        CommandError: If the executable is missing or the command times out
    """
    config = get_config()
    cmd = [str(part) for part in cmd]
    line = shlex.join(cmd)

    if config.mock and not readonly:
        logger.info(f"MOCK: Would run: {line}")
        return CommandResult(cmd, 0, mock=True)

    logger.debug(f"Running: {line}")
    timeout = config.command_timeout or None

    try:
        result = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT if merge_stderr else subprocess.PIPE,
            text=True,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError:
        raise CommandError(f"Command not found: {cmd[0]}", cmd=cmd, returncode=127)
    except subprocess.TimeoutExpired:
        raise CommandError(f"Timed out after {timeout}s: {line}", cmd=cmd)

    return CommandResult(
        cmd=cmd,
        returncode=result.returncode,
        stdout=result.stdout or "",
        stderr=result.stderr or "",
    )


def interpret(
    result: CommandResult,
    action: str,
    expect: Optional[Callable[[CommandResult], bool]] = quiet,
    benign: Optional[str] = None,
) -> bool:
    """Classify a command outcome.

    Args:
        result: Result returned by run_command()
        action: Human-readable description used in log lines and errors
        expect: Extra success predicate; None means the exit status alone decides
        benign: Regex that, when found in the output, marks a harmless failure

    Returns:
        True on success, False when the benign pattern matched

    Raises:
        CommandError: For any other outcome, carrying the raw output
    """
    if result.ok and (expect is None or expect(result)):
        return True

    if benign and re.search(benign, result.output, re.MULTILINE):
        logger.warning(f"{action}: {result.output.strip()}")
        return False

    detail = result.output.strip() or f"exit status {result.returncode}"
    logger.error(f"Failed to {action}: {detail}")
    raise CommandError(
        f"Failed to {action}",
        cmd=result.cmd,
        returncode=result.returncode,
        output=result.output,
    )


def pipe_commands(producer: Sequence[str], consumer: Sequence[str], action: str) -> None:
    """Run ``producer | consumer`` and fail if either side fails.

    The producer must not write anything to stderr.

    Raises:
        CommandError: If either command fails or cannot be started
    """
    producer = [str(part) for part in producer]
    consumer = [str(part) for part in consumer]
    line = f"{shlex.join(producer)} | {shlex.join(consumer)}"

    if get_config().mock:
        logger.info(f"MOCK: Would run: {line}")
        return

    logger.debug(f"Running: {line}")

    try:
        with tempfile.TemporaryFile() as producer_err:
            sender = subprocess.Popen(producer, stdout=subprocess.PIPE, stderr=producer_err)
            try:
                receiver = subprocess.Popen(
                    consumer,
                    stdin=sender.stdout,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                )
            except FileNotFoundError:
                sender.kill()
                sender.wait()
                raise
            finally:
                # receiver owns the read end now
                sender.stdout.close()

            receiver_out, _ = receiver.communicate()
            sender.wait()

            producer_err.seek(0)
            sender_errors = producer_err.read().decode(errors="replace")
    except FileNotFoundError as e:
        raise CommandError(f"Command not found: {e.filename}", returncode=127)

    receiver_output = (receiver_out or b"").decode(errors="replace")

    sender_failed = sender.returncode != 0 or bool(sender_errors.strip())
    # a sender killed by SIGPIPE only means the receiver stopped reading
    if receiver.returncode != 0 and (not sender_failed or sender.returncode == -signal.SIGPIPE):
        logger.error(f"Failed to {action}: {receiver_output.strip()}")
        raise CommandError(
            f"Failed to {action}",
            cmd=consumer,
            returncode=receiver.returncode,
            output=receiver_output,
        )

    if sender_failed:
        logger.error(f"Failed to {action}: {sender_errors.strip()}")
        raise CommandError(
            f"Failed to {action}",
            cmd=producer,
            returncode=sender.returncode,
            output=sender_errors,
        )

    logger.info(f"Completed: {line}")
