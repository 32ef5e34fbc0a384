from __future__ import annotations

import io
import re
from pathlib import Path
from types import SimpleNamespace

import pytest

from streamfind.cli import collect_matches, iter_matches, main, parse_pattern
from streamfind.core.search import StreamFinder


def offsets(out: str) -> list[int]:
    return [int(m, 16) for m in re.findall(r"0x([0-9a-f]{8})", out)]


@pytest.fixture
def sample(tmp_path: Path) -> Path:
    p = tmp_path / "sample.bin"
    p.write_bytes(b"abc needle xyz\x00\x01 needle end")
    return p


def test_forward_search(sample: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main([str(sample), "needle"]) == 0
    out = capsys.readouterr().out
    assert offsets(out) == [4, 17]
    assert "2 matches for 'needle' (forward)" in out
    # Context glyphs are shown around the hit, non-printables as dots.
    assert "xyz··" in out


def test_reverse_search(sample: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main([str(sample), "needle", "--reverse", "--context", "0"]) == 0
    out = capsys.readouterr().out
    assert offsets(out) == [17, 4]
    assert "(backward)" in out


def test_count_only(sample: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main([str(sample), "needle", "--count"]) == 0
    out = capsys.readouterr().out
    assert offsets(out) == []
    assert "2 matches" in out


def test_no_match_exit_code(sample: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main([str(sample), "haystack"]) == 1
    assert "0 matches" in capsys.readouterr().out


def test_hex_pattern_and_limit(sample: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main([str(sample), "--hex", "00 01", "-C", "0"]) == 0
    assert offsets(capsys.readouterr().out) == [14]

    assert main([str(sample), "needle", "--max", "1"]) == 0
    out = capsys.readouterr().out
    assert offsets(out) == [4]
    assert "limit reached" in out


def test_start_offset(sample: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main([str(sample), "needle", "--start", "5", "-C", "0"]) == 0
    assert offsets(capsys.readouterr().out) == [17]


def test_stdin_forward_only(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr("sys.stdin", io.TextIOWrapper(io.BytesIO(b"..xx..xx")))
    assert main(["-", "xx"]) == 0
    assert offsets(capsys.readouterr().out) == [2, 6]

    monkeypatch.setattr("sys.stdin", io.TextIOWrapper(io.BytesIO(b"..xx..xx")))
    assert main(["-", "xx", "--reverse"]) == 2
    assert "forward" in capsys.readouterr().err


@pytest.mark.parametrize(
    ("args", "message"),
    [
        (["missing.bin", "x"], "file not found"),
        (["{sample}", ""], "invalid pattern"),
        (["{sample}", "zz", "--hex"], "invalid pattern"),
        (["{sample}", "x", "--profile", "turbo"], "unknown profile"),
        (["{sample}", "x", "--reverse", "--start", "3"], "forward search only"),
        (["{sample}", "x", "--max", "0"], "--max must be positive"),
    ],
)
def test_usage_errors(
    sample: Path, capsys: pytest.CaptureFixture[str], args: list[str], message: str
) -> None:
    argv = [a.format(sample=sample) for a in args]
    assert main(argv) == 2
    assert message in capsys.readouterr().err


def test_profile_file(sample: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    profile = tmp_path / "quick.yaml"
    profile.write_text("max_matches: 1\ncontext: 0\n", encoding="utf-8")
    assert main([str(sample), "needle", "--profile-file", str(profile)]) == 0
    assert offsets(capsys.readouterr().out) == [4]

    profile.write_text("context: lots\n", encoding="utf-8")
    assert main([str(sample), "needle", "--profile-file", str(profile)]) == 2
    assert "context must be an integer" in capsys.readouterr().err


def test_unreadable_profile_file(
    sample: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    assert main([str(sample), "needle", "--profile-file", str(tmp_path)]) == 2
    assert "cannot read profile file" in capsys.readouterr().err

    profile = tmp_path / "binary.yaml"
    profile.write_bytes(b"\xff\xfe\x00bad")
    assert main([str(sample), "needle", "--profile-file", str(profile)]) == 2
    assert "cannot read profile file" in capsys.readouterr().err


class FailAfterFirstRead:
    """Serves one chunk, then fails like a dropped connection."""

    def __init__(self, data: bytes) -> None:
        self._data = data

    def readinto(self, view: memoryview) -> int:
        if self._data is None:
            raise OSError("connection reset")
        n = len(self._data)
        view[:n] = self._data
        self._data = None
        return n


def test_matches_printed_while_searching(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr("sys.stdin", SimpleNamespace(buffer=FailAfterFirstRead(b"..xx..")))
    assert main(["-", "xx"]) == 2
    captured = capsys.readouterr()
    assert offsets(captured.out) == [2]
    assert "connection reset" in captured.err


def test_count_does_not_collect_positions(
    sample: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    def no_lists(*args, **kwargs):
        raise AssertionError("positions list built")

    monkeypatch.setattr("streamfind.cli.collect_matches", no_lists)
    assert main([str(sample), "needle", "--count"]) == 0
    assert "2 matches" in capsys.readouterr().out


def test_parse_pattern() -> None:
    assert parse_pattern("de ad", hex_mode=True, encoding="utf-8") == b"\xde\xad"
    assert parse_pattern("é", hex_mode=False, encoding="latin-1") == b"\xe9"
    with pytest.raises(ValueError):
        parse_pattern("xyz", hex_mode=True, encoding="utf-8")


def test_collect_matches_limit() -> None:
    finder = StreamFinder(b"a")
    positions, limited = collect_matches(finder, io.BytesIO(b"aaaa"), limit=2)
    assert (positions, limited) == ([0, 1], True)
    positions, limited = collect_matches(finder, io.BytesIO(b"aaaa"), reverse=True)
    assert (positions, limited) == ([3, 2, 1, 0], False)


def test_iter_matches_is_lazy() -> None:
    finder = StreamFinder(b"a")
    matches = iter_matches(finder, io.BytesIO(b"aaaa"), limit=3)
    assert next(matches) == 0
    assert list(matches) == [1, 2]
