# src/sisrs/utils/runner.py
from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import IO, List, Mapping, Optional, Sequence

from sisrs.utils.logger import get_logger

LOG = get_logger("runner")


def _merged_env(env: Optional[Mapping[str, str]]) -> dict:
    # Merge env with current environment so PATH and friends are preserved
    env_dict = os.environ.copy()
    if env:
        env_dict.update({str(k): str(v) for k, v in env.items()})
    return env_dict


def run_command(
    cmd: Sequence[str],
    *,
    dry_run: bool = False,
    capture: bool = True,
    stdout_path: Optional[Path] = None,
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> subprocess.CompletedProcess:
    """
    Execute a subprocess with unified logging and error handling.

    - Logs the exact command line.
    - Respects dry_run (no execution).
    - stdout_path redirects stdout into a file (e.g. pileups, subsampled reads).
    - capture=True buffers stderr (and stdout when not redirected) for logging.
    - Raises CalledProcessError on failure (after logging stdout/stderr).
    """
    line = " ".join(str(c) for c in cmd)
    if stdout_path is not None:
        line += f" > {stdout_path}"
    LOG.info("Running: %s", line)
    if dry_run:
        LOG.debug("[dry-run] command not executed")
        return subprocess.CompletedProcess(list(cmd), 0, "", "")

    env_dict = _merged_env(env)
    out_handle: Optional[IO[str]] = None
    try:
        if stdout_path is not None:
            out_handle = open(stdout_path, "w", encoding="utf-8")
        result = subprocess.run(
            [str(c) for c in cmd],
            check=True,
            cwd=str(cwd) if cwd else None,
            env=env_dict,
            text=True,
            stdout=out_handle if out_handle is not None else (subprocess.PIPE if capture else None),
            stderr=subprocess.PIPE if capture else None,
        )
    except FileNotFoundError:
        # Typically means the executable is not on PATH
        LOG.error("Executable not found: %s (PATH=%s)", cmd[0], env_dict.get("PATH", ""))
        raise
    except subprocess.CalledProcessError as e:
        if e.stdout:
            LOG.error("STDOUT:\n%s", e.stdout.strip())
        if e.stderr:
            LOG.error("STDERR:\n%s", e.stderr.strip())
        LOG.error("Command failed with exit code %s: %s", e.returncode, cmd[0])
        raise
    finally:
        if out_handle is not None:
            out_handle.close()

    if capture and result.stdout:
        LOG.debug("Captured STDOUT:\n%s", result.stdout.strip())
    return result


def run_piped(
    cmds: Sequence[Sequence[str]],
    *,
    dry_run: bool = False,
    stdout_path: Optional[Path] = None,
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> None:
    """
    Run `cmd1 | cmd2 | ...` without a shell.

    The exit status of the pipe is the first non-zero status from left to right
    (pipefail). Raises CalledProcessError naming the failing command.
    """
    line = " | ".join(" ".join(str(c) for c in cmd) for cmd in cmds)
    if stdout_path is not None:
        line += f" > {stdout_path}"
    LOG.info("Running: %s", line)
    if dry_run:
        LOG.debug("[dry-run] pipeline not executed")
        return

    env_dict = _merged_env(env)
    procs: List[subprocess.Popen] = []
    out_handle: Optional[IO[bytes]] = None
    try:
        if stdout_path is not None:
            out_handle = open(stdout_path, "wb")
        upstream = None
        for i, cmd in enumerate(cmds):
            last = i == len(cmds) - 1
            p = subprocess.Popen(
                [str(c) for c in cmd],
                stdin=upstream,
                stdout=(out_handle if out_handle is not None else subprocess.DEVNULL) if last else subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=str(cwd) if cwd else None,
                env=env_dict,
            )
            if upstream is not None:
                # let the upstream process receive SIGPIPE if this one exits
                upstream.close()
            upstream = p.stdout
            procs.append(p)

        # Drain stderr of the last process; earlier ones are read after they finish
        stderrs = [b""] * len(procs)
        _, stderrs[-1] = procs[-1].communicate()
        for i, p in enumerate(procs[:-1]):
            stderrs[i] = p.stderr.read() if p.stderr else b""
            p.wait()
    except FileNotFoundError:
        LOG.error("Executable not found in pipeline: %s (PATH=%s)", line, env_dict.get("PATH", ""))
        for p in procs:
            p.kill()
        raise
    finally:
        if out_handle is not None:
            out_handle.close()
        for p in procs:
            if p.stderr:
                p.stderr.close()

    for cmd, p, err in zip(cmds, procs, stderrs):
        if p.returncode != 0:
            if err:
                LOG.error("STDERR (%s):\n%s", cmd[0], err.decode("utf-8", errors="replace").strip())
            LOG.error("Command failed with exit code %s: %s", p.returncode, cmd[0])
            raise subprocess.CalledProcessError(p.returncode, list(cmd), stderr=err)
