#
# Copyright 2024 xcpack Project Authors. All rights reserved.
# Use of this source code is governed by a MIT-style
# license that can be found at
#
# https://opensource.org/license/MIT
#
# The above copyright notice and this permission
# notice shall be included in all copies or
# substantial portions of the Software.

import os
import shlex
import subprocess
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Type

from xcpack.utils.errors import ProcessError, ToolTimeoutError

# cargo builds of a large workspace can take a while
DEFAULT_TIMEOUT_SECOND = 3 * 3600


@dataclass
class ToolOutput:
    command: List[str]
    returncode: int
    stdout: str
    stderr: str


def format_command(command: Sequence[str]) -> str:
    return " ".join(shlex.quote(str(arg)) for arg in command)


def decode_bytes(data: Optional[bytes]) -> str:
    if not data:
        return ""
    try:
        return bytes.decode(data, "UTF-8")
    except UnicodeDecodeError:
        return bytes.decode(data, "UTF-8", errors="replace")


def _merged_env(env: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
    if not env:
        return None
    merged = dict(os.environ)
    merged.update(env)
    return merged


def run_tool(
    command: Sequence[str],
    timeout: Optional[float] = DEFAULT_TIMEOUT_SECOND,
    env: Optional[Dict[str, str]] = None,
    cwd=None,
    error_class: Type[ProcessError] = ProcessError,
    echo: bool = True,
) -> ToolOutput:
    """
    Run an external tool and capture its output.

    Args:
        command: argv list, never passed through a shell
        timeout: seconds to wait before killing the tool, None waits forever
        env: extra environment variables on top of the current environment
        cwd: working directory
        error_class: ProcessError subclass raised on a non-zero exit
        echo: print the command before running it

    Returns:
        ToolOutput with the decoded stdout and stderr

    Raises:
        error_class: the tool exited with a non-zero status
        ToolTimeoutError: the tool did not finish within timeout
    """
    command = [str(arg) for arg in command]
    if echo:
        print(f"$ {format_command(command)}")
    try:
        completed = subprocess.run(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            env=_merged_env(env),
            cwd=cwd,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise ToolTimeoutError(
            command, timeout, decode_bytes(e.stdout), decode_bytes(e.stderr)
        ) from e
    except OSError as e:
        # tool not installed or not executable
        raise error_class(command, None, "", str(e)) from e

    stdout = decode_bytes(completed.stdout)
    stderr = decode_bytes(completed.stderr)
    if completed.returncode != 0:
        raise error_class(command, completed.returncode, stdout, stderr)
    return ToolOutput(command, completed.returncode, stdout, stderr)


def exec_command(command, timeout_second=DEFAULT_TIMEOUT_SECOND, env=None, cwd=None):
    """
    Run a build command with its output streamed to the terminal.

    Returns:
        tuple: (err_code, err_msg), err_msg is empty unless the command
        timed out
    """
    start_mills = int(time.time() * 1000)
    command = [str(arg) for arg in command]
    print(f"$ {format_command(command)}")
    try:
        completed = subprocess.run(
            command, env=_merged_env(env), cwd=cwd, timeout=timeout_second
        )
    except subprocess.TimeoutExpired:
        use_time = int(time.time() * 1000) - start_mills
        return -9, f"Failed for timeout, use_time: {use_time}ms"
    except OSError as e:
        return 127, str(e)
    return completed.returncode, ""
