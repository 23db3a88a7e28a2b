"""Tests for the log file scanning helpers."""

import os
import time

import pytest

from host_telemetry_exporter import hostfs
from host_telemetry_exporter.hostfs import logfile


def test_iter_matching_lines_literal_match(tmp_path):
    """Only lines containing the literal pattern are yielded, in order."""
    log = tmp_path / "log"
    log.write_text("alpha one\nbeta\nalpha two\n")
    actual = list(logfile.iter_matching_lines(str(log), b"alpha"))
    assert actual == ["alpha one", "alpha two"]


def test_iter_matching_lines_pattern_is_not_regex(tmp_path):
    """Regex metacharacters in the pattern are matched literally."""
    log = tmp_path / "log"
    log.write_text("a.c\nabc\n")
    assert list(logfile.iter_matching_lines(str(log), b"a.c")) == ["a.c"]


def test_iter_matching_lines_invalid_utf8_is_replaced(tmp_path):
    """Undecodable bytes do not abort the scan."""
    log = tmp_path / "log"
    log.write_bytes(b"match \xff\xfe here\n")
    actual = list(logfile.iter_matching_lines(str(log), b"match"))
    assert len(actual) == 1
    assert actual[0].startswith("match ")


def test_iter_matching_lines_missing_file(tmp_path):
    """A missing file is a source-level failure."""
    with pytest.raises(hostfs.SourceUnavailableError):
        list(logfile.iter_matching_lines(str(tmp_path / "nope"), b"x"))


def test_last_matching_line_empty_when_no_match(tmp_path):
    """No matching line yields an empty string, not an error."""
    log = tmp_path / "log"
    log.write_text("nothing to see\n")
    assert logfile.last_matching_line(str(log), b"chef") == ""


def test_seconds_since_modified(tmp_path):
    """Age is wall-clock time minus mtime."""
    log = tmp_path / "log"
    log.write_text("x\n")
    mtime = time.time() - 300
    os.utime(log, (mtime, mtime))
    assert logfile.seconds_since_modified(str(log)) == pytest.approx(300, abs=5)


def test_first_existing_prefers_earlier_candidate(tmp_path):
    """The first existing candidate wins even if later ones exist too."""
    first = tmp_path / "kern.log"
    second = tmp_path / "messages"
    first.write_text("")
    second.write_text("")
    candidates = [str(tmp_path / "missing"), str(first), str(second)]
    assert logfile.first_existing(candidates) == str(first)


def test_first_existing_none_exist(tmp_path):
    """No existing candidate is a source-level failure."""
    with pytest.raises(hostfs.SourceUnavailableError, match="No log file found"):
        logfile.first_existing([str(tmp_path / "a"), str(tmp_path / "b")])
