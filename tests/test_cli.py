"""Tests for the pwdgen command line."""

import gzip
import re

import pytest

from pwdgen import EXIT_BAD_PATTERN, EXIT_NO_PATTERN, EXIT_OUTPUT_EXISTS, main


def test_repeated_literal_pattern(capsys: pytest.CaptureFixture) -> None:
    main(["-p", "abc", "-t", "3"])

    assert capsys.readouterr().out == "abc\nabc\nabc\n"


def test_letter_digit_pairs(capsys: pytest.CaptureFixture) -> None:
    main(["-p", "([A-Za-z][0-9])*3"])

    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 1
    assert re.fullmatch(r"([A-Za-z][0-9]){3}", lines[0])


@pytest.mark.parametrize("times", [[], ["-t", "0"], ["-t", "1"]])
def test_zero_or_missing_times_means_one(capsys: pytest.CaptureFixture, times) -> None:
    main(["-p", "[a]*4", *times])

    assert capsys.readouterr().out == "aaaa\n"


def test_missing_pattern_exit_status(capsys: pytest.CaptureFixture) -> None:
    with pytest.raises(SystemExit) as exc_info:
        main([])

    assert exc_info.value.code == EXIT_NO_PATTERN
    assert capsys.readouterr().out == ""


def test_invalid_pattern_exit_status(capsys: pytest.CaptureFixture) -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["-p", "[b-a]", "-t", "5"])

    assert exc_info.value.code == EXIT_BAD_PATTERN
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "Password definition error" in captured.err


def test_missing_and_invalid_are_distinct() -> None:
    assert EXIT_NO_PATTERN != EXIT_BAD_PATTERN
    assert 0 not in (EXIT_NO_PATTERN, EXIT_BAD_PATTERN)


def test_negative_times_is_a_usage_error() -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["-p", "abc", "-t", "-1"])

    assert exc_info.value.code == 2


def test_check_only_validates(capsys: pytest.CaptureFixture) -> None:
    main(["-p", "[a-z]*8", "--check"])

    assert capsys.readouterr().out == ""


def test_seed_is_reproducible(capsys: pytest.CaptureFixture) -> None:
    main(["-p", "[A-Za-z0-9]*20", "-t", "4", "--seed", "42"])
    first = capsys.readouterr().out
    main(["-p", "[A-Za-z0-9]*20", "-t", "4", "--seed", "42"])
    second = capsys.readouterr().out

    assert first == second
    assert len(first.splitlines()) == 4


def test_progress_does_not_touch_stdout(capsys: pytest.CaptureFixture) -> None:
    main(["-p", "xy", "-t", "10", "--progress"])

    assert capsys.readouterr().out == "xy\n" * 10


class TestOutputFile:
    def test_plain_file(self, tmp_path, capsys: pytest.CaptureFixture) -> None:
        target = tmp_path / "out" / "passwords.txt"

        main(["-p", "a\\-b", "-t", "2", "-o", str(target)])

        assert target.read_text() == "a-b\na-b\n"
        assert capsys.readouterr().out == ""

    def test_gzip_file_and_show(self, tmp_path, capsys: pytest.CaptureFixture) -> None:
        target = tmp_path / "passwords.txt.gz"

        main(["-p", "[z]*3", "-t", "2", "-o", str(target), "-s"])

        with gzip.open(target, "rt") as f:
            assert f.read() == "zzz\nzzz\n"
        assert capsys.readouterr().out == "zzz\nzzz\n"

    def test_existing_file_is_refused(self, tmp_path) -> None:
        target = tmp_path / "passwords.txt"
        target.write_text("keep\n")

        with pytest.raises(SystemExit) as exc_info:
            main(["-p", "abc", "-o", str(target)])

        assert exc_info.value.code == EXIT_OUTPUT_EXISTS
        assert target.read_text() == "keep\n"

    def test_force_overwrites(self, tmp_path) -> None:
        target = tmp_path / "passwords.txt"
        target.write_text("old\n")

        main(["-p", "new", "-o", str(target), "--force"])

        assert target.read_text() == "new\n"
