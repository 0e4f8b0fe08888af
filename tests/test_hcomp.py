import pytest

import hcomp


def test_version(capsys):
    assert hcomp.main(["--version"]) == 0
    assert capsys.readouterr().out == "hcomp version 1.3\n"


def test_help(capsys):
    assert hcomp.main(["--help"]) == 0
    out = capsys.readouterr().out
    assert out.startswith("usage: hcomp")
    assert "-c    compress" in out


@pytest.mark.parametrize("argv", [
    [],
    ["--bogus"],
    ["-x", "a", "b"],
    ["-c", "a"],
    ["-c", "a", "b", "-z"],
])
def test_invalid_arguments(argv, capsys):
    assert hcomp.main(argv) == 1
    assert "hcomp: error:" in capsys.readouterr().err


@pytest.mark.parametrize("size, expected", [
    (0, "~0.000B"),
    (1000, "~1000.000B"),
    (2048, "~2.000KB"),
    (3 << 20, "~3.000MB"),
    (5 << 30, "~5.000GB"),
])
def test_format_size(size, expected):
    assert hcomp.format_size(size) == expected


def test_compress_then_decompress(tmp_path, capsys):
    source = tmp_path / "notes.txt"
    packed = tmp_path / "notes.hc"
    restored = tmp_path / "notes.out"
    source.write_bytes(b"she sells sea shells by the sea shore\n" * 50)

    assert hcomp.main(["-c", str(source), str(packed)]) == 0
    out = capsys.readouterr().out
    assert "Compressing" in out
    assert "Compression ratio:" in out

    assert hcomp.main(["-d", str(packed), str(restored)]) == 0
    assert restored.read_bytes() == source.read_bytes()


def test_model_and_timing_options(tmp_path, capsys):
    source = tmp_path / "in"
    source.write_bytes(b"AAABBC")
    assert hcomp.main(["-c", str(source), str(tmp_path / "out"), "-m", "-t"]) == 0
    out = capsys.readouterr().out
    assert "Huffman code=<0>" in out
    assert "Wall Time (ms)" in out
    assert "CompressFile" in out


def test_missing_source(tmp_path, capsys):
    target = tmp_path / "out"
    assert hcomp.main(["-c", str(tmp_path / "nope"), str(target)]) == 1
    assert "not found" in capsys.readouterr().err
    assert not target.exists()


def test_empty_source(tmp_path, capsys):
    source = tmp_path / "empty"
    source.write_bytes(b"")
    assert hcomp.main(["-c", str(source), str(tmp_path / "out")]) == 1
    assert "is empty" in capsys.readouterr().err


def test_not_a_container(tmp_path, capsys):
    source = tmp_path / "plain.txt"
    source.write_bytes(b"plain text is not a container")
    target = tmp_path / "out"
    assert hcomp.main(["-d", str(source), str(target)]) == 1
    assert "not a valid hcomp file" in capsys.readouterr().err
    assert not target.exists()
