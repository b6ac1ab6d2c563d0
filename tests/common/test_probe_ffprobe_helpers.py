import subprocess

import mediaprobe.common.probe.ffprobe_helpers as helpers
from mediaprobe.common.probe.ffprobe_helpers import (
    build_ffprobe_cmd,
    default_ffprobe_candidates,
    ffprobe_version,
    find_ffprobe,
    get_tag,
    leading_int,
    parse_int,
    round_half_up,
)


def test_build_ffprobe_cmd_fixed_contract(tmp_path):
    f = tmp_path / "movie.mkv"
    cmd = build_ffprobe_cmd("/usr/bin/ffprobe", f)
    assert cmd == [
        "/usr/bin/ffprobe",
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(f),
    ]


def test_default_candidates_configured_first_and_unique():
    cands = default_ffprobe_candidates("/custom/ffprobe")
    assert cands[0] == "/custom/ffprobe"
    assert len(cands) == len(set(cands))
    assert len(cands) > 1


def _fake_run(good: set, banner: str = "ffprobe version 6.1.1-3ubuntu5 Copyright (c) 2007-2023"):
    calls = []

    def run(cmd, **kwargs):
        calls.append(list(cmd))
        if cmd[0] == "/missing/ffprobe":
            raise FileNotFoundError(cmd[0])
        rc = 0 if cmd[0] in good else 1
        return subprocess.CompletedProcess(cmd, rc, stdout=banner, stderr="")

    return run, calls


def test_find_ffprobe_returns_first_working(monkeypatch):
    run, calls = _fake_run({"/good/ffprobe", "/other/ffprobe"})
    monkeypatch.setattr(helpers.subprocess, "run", run)

    found = find_ffprobe(["/missing/ffprobe", "/broken/ffprobe", "/good/ffprobe", "/other/ffprobe"])
    assert found == "/good/ffprobe"
    assert [c[0] for c in calls] == ["/missing/ffprobe", "/broken/ffprobe", "/good/ffprobe"]
    assert all(c[1:] == ["-version"] for c in calls)


def test_find_ffprobe_none_when_nothing_works(monkeypatch):
    run, _ = _fake_run(set())
    monkeypatch.setattr(helpers.subprocess, "run", run)
    assert find_ffprobe(["/a", "/b"]) is None


def test_ffprobe_version(monkeypatch):
    run, _ = _fake_run({"/good/ffprobe"})
    monkeypatch.setattr(helpers.subprocess, "run", run)
    assert ffprobe_version("/good/ffprobe") == "6.1.1-3ubuntu5"
    assert ffprobe_version("/missing/ffprobe") is None

    run2, _ = _fake_run({"/good/ffprobe"}, banner="something else entirely")
    monkeypatch.setattr(helpers.subprocess, "run", run2)
    assert ffprobe_version("/good/ffprobe") == "unknown"


def test_small_parsers():
    assert parse_int("640000") == 640000
    assert parse_int("12.9") == 12
    assert parse_int("N/A") is None
    assert parse_int(None) is None
    assert leading_int("3/12") == 3
    assert leading_int("07") == 7
    assert leading_int("x") is None
    assert round_half_up(2.5) == 3
    assert round_half_up(921.6) == 922


def test_get_tag_first_non_blank_wins():
    stream = {"tags": {"BPS": "  ", "BPS-eng": "640000"}}
    assert get_tag(stream, "BPS", "BPS-eng") == "640000"
    assert get_tag(stream, "missing") is None
    assert get_tag({}, "BPS") is None
    assert get_tag({"tags": "oops"}, "BPS") is None
