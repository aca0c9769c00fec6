import subprocess
import sys

import pytest

from sisrs.utils.runner import run_command, run_piped

PY = sys.executable


def test_run_command_redirects_stdout(tmp_path):
    out = tmp_path / "out.txt"
    run_command([PY, "-c", "print('ACGT')"], stdout_path=out)
    assert out.read_text().strip() == "ACGT"


def test_run_command_raises_on_failure():
    with pytest.raises(subprocess.CalledProcessError) as ei:
        run_command([PY, "-c", "import sys; sys.exit(4)"])
    assert ei.value.returncode == 4


def test_run_command_dry_run_executes_nothing(tmp_path):
    marker = tmp_path / "marker"
    result = run_command([PY, "-c", f"open({str(marker)!r}, 'w')"], dry_run=True)
    assert result.returncode == 0
    assert not marker.exists()


def test_run_command_env_is_merged(tmp_path):
    out = tmp_path / "env.txt"
    run_command([PY, "-c", "import os; print(os.environ['SISRS_TEST'])"], stdout_path=out, env={"SISRS_TEST": "7"})
    assert out.read_text().strip() == "7"


def test_run_piped_chains_stdout(tmp_path):
    out = tmp_path / "piped.txt"
    run_piped(
        [
            [PY, "-c", "print('acgt')"],
            [PY, "-c", "import sys; print(sys.stdin.read().strip().upper())"],
        ],
        stdout_path=out,
    )
    assert out.read_text().strip() == "ACGT"


def test_run_piped_reports_first_failure(tmp_path):
    with pytest.raises(subprocess.CalledProcessError) as ei:
        run_piped(
            [
                [PY, "-c", "import sys; sys.exit(2)"],
                [PY, "-c", "import sys; sys.stdin.read()"],
            ],
            stdout_path=tmp_path / "x",
        )
    assert ei.value.returncode == 2


def test_missing_executable_raises():
    with pytest.raises(FileNotFoundError):
        run_command(["sisrs-no-such-tool-xyz"])
