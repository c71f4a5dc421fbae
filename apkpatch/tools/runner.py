"""Synchronous execution of external align/sign tools."""

from __future__ import annotations

import logging
import subprocess  # nosec B404
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

from ..exceptions import ExternalToolError
from ..logging_config import log_process_output

logger = logging.getLogger(__name__)


@dataclass
class ToolResult:
    tool_name: str
    command: List[str]
    returncode: int
    output: str


def run_external_tool(
    cmd: Sequence[str],
    tool_name: str,
    timeout_sec: Optional[float] = None,
    log_dir: Union[str, Path, None] = None,
) -> ToolResult:
    """Run ``cmd`` to completion and collect its combined output.

    Output is fully read before the exit status is checked.

    Raises:
        ExternalToolError: if the tool cannot start, times out or exits non-zero
    """
    command = [str(part) for part in cmd]
    logger.info("Running %s...", tool_name)
    logger.debug("%s command: %s", tool_name, " ".join(command))

    timed_out = False
    try:
        with subprocess.Popen(  # nosec B603
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
        ) as process:
            try:
                raw_output, _ = process.communicate(timeout=timeout_sec)
            except subprocess.TimeoutExpired:
                timed_out = True
                process.kill()
                raw_output, _ = process.communicate()
            returncode = process.returncode
    except OSError as exc:
        raise ExternalToolError(
            f"Failed to start {tool_name}: {exc}",
            tool_name=tool_name,
        ) from exc

    output = (raw_output or b"").decode("utf-8", errors="replace")
    for line in output.splitlines():
        logger.debug("%s: %s", tool_name, line)
    if log_dir is not None:
        log_process_output(log_dir, tool_name, output)

    if timed_out:
        raise ExternalToolError(
            f"{tool_name} did not finish within {timeout_sec}s",
            tool_name=tool_name,
            exit_code=returncode,
            timed_out=True,
            output=output,
        )
    if returncode != 0:
        raise ExternalToolError(
            f"Error during {tool_name} process (exit code {returncode})",
            tool_name=tool_name,
            exit_code=returncode,
            output=output,
        )
    return ToolResult(tool_name, command, returncode, output)
