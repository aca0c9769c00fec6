import subprocess
import threading
import time

import pytest

from sisrs.errors import StageFailed
from sisrs.utils.pool import run_units


def test_all_units_run():
    seen = []
    lock = threading.Lock()

    def unit(label):
        def _run():
            with lock:
                seen.append(label)
        return _run

    run_units("align_contigs", {k: unit(k) for k in ["a", "b", "c", "d"]}, processors=2)
    assert sorted(seen) == ["a", "b", "c", "d"]


def test_no_units_is_a_noop():
    run_units("subsample", {}, processors=4)


def test_failure_waits_for_siblings_and_reports_first_label():
    finished = []

    def ok():
        finished.append("ok")

    def bad(code):
        def _run():
            raise subprocess.CalledProcessError(code, ["samtools"])
        return _run

    with pytest.raises(StageFailed) as ei:
        run_units("identify_fixed_sites", {"t2": bad(2), "t1": bad(1), "t3": ok}, processors=3)
    assert ei.value.unit == "t1"
    assert ei.value.exit_code == 1
    assert ei.value.stage == "identify_fixed_sites"
    assert finished == ["ok"]


def test_non_subprocess_errors_propagate():
    def boom():
        raise RuntimeError("bad input")

    with pytest.raises(RuntimeError):
        run_units("call_alleles", {"t": boom}, processors=1)


def test_units_in_flight_never_exceed_processors():
    lock = threading.Lock()
    state = {"active": 0, "peak": 0}

    def unit():
        with lock:
            state["active"] += 1
            state["peak"] = max(state["peak"], state["active"])
        time.sleep(0.05)
        with lock:
            state["active"] -= 1

    run_units("align_contigs", {f"t{i}": unit for i in range(8)}, processors=3)
    assert 1 <= state["peak"] <= 3
    assert state["active"] == 0
