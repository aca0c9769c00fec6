import pytest

from sisrs.cli import build_parser, main


@pytest.fixture(autouse=True)
def _in_tmp(tmp_path, monkeypatch):
    # the run log is written to the working directory
    monkeypatch.chdir(tmp_path)


def test_no_command_prints_help(capsys):
    main([])
    assert "usage: sisrs" in capsys.readouterr().out


def test_every_stage_is_a_command():
    parser = build_parser()
    args = parser.parse_args(["identifyFixedSites", "-m", "1"])
    assert args.pipeline_command == "identify_fixed_sites"
    assert args.missing == 1


def test_unsupported_assembler_exits_before_running(reads_tree):
    with pytest.raises(SystemExit) as ei:
        main(["sites", "-d", str(reads_tree), "-g", "1000", "-a", "bwa"])
    assert ei.value.code == 1


def test_subsampling_run_without_genome_size_fails(reads_tree):
    with pytest.raises(SystemExit) as ei:
        main(["sites", "-d", str(reads_tree)])
    assert ei.value.code == 1


def test_dry_run_prints_plan(reads_tree, tmp_path, capsys):
    main(["build_contigs", "--dry-run", "-d", str(reads_tree), "-o", str(tmp_path / "out")])
    lines = capsys.readouterr().out.splitlines()
    assert [line.split(":")[0] for line in lines] == [
        "[plan] build_contigs", "[plan] align_contigs", "[plan] map_contigs",
        "[plan] identify_fixed_sites", "[plan] output_alignment", "[plan] filter_missing",
    ]
    assert lines[0] == "[plan] build_contigs: waiting (no subsampled reads)"
    assert not (tmp_path / "out").exists()


def test_unknown_reads_dir(tmp_path):
    with pytest.raises(SystemExit):
        main(["output_alignment", "-d", str(tmp_path / "nowhere")])
