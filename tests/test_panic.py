import sys

from amaru.panic import (
    format_crash_report,
    indent,
    install_panic_handler,
    node_info,
    node_version,
    pad_left,
)


def test_pad_left_reaches_requested_length():
    padded = pad_left("ab", 5, " ")
    assert len(padded) == 5
    assert padded.endswith("ab")
    assert padded.strip() == "ab"


def test_pad_left_leaves_long_text_alone():
    assert pad_left("abcdef", 3, "x") == "abcdef"


def test_pad_left_repeats_delimiter_per_missing_byte():
    padded = pad_left("", 2, "-=")
    assert padded == "-=" * 2


def test_indent_each_line():
    result = indent("first\nsecond\n", 3)
    lines = result.split("\n")
    assert [line.lstrip(" ") for line in lines] == ["first", "second"]
    assert all(line.startswith("   ") for line in lines)


def test_indent_empty():
    assert indent("", 4) == ""


def test_node_version():
    assert node_version(False).startswith("v")
    assert "+" not in node_version(False)
    assert node_version(True).startswith(node_version(False) + "+")


def test_node_info_fields():
    info = node_info()
    assert info.startswith("\n")
    assert "Operating System: " in info
    assert "Architecture:     " in info
    assert info.endswith(node_version(True))


def test_crash_report_contents():
    report = format_crash_report("boom", ("main.py", 12, 5))
    assert report.lstrip().startswith("amaru::fatal::error")
    assert "main.py:12:5" in report
    assert report.endswith("boom")
    assert all(line.startswith("   ") for line in report.split("\n") if line)


def test_crash_report_without_location():
    report = format_crash_report("kaput")
    assert report.split("\n")[-1] == "   kaput"


def test_installed_hook_prints_report(monkeypatch, capsys):
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    install_panic_handler()
    try:
        raise RuntimeError("the ledger is on fire")
    except RuntimeError as exc:
        sys.excepthook(type(exc), exc, exc.__traceback__)
    out = capsys.readouterr().out
    assert "amaru::fatal::error" in out
    assert "the ledger is on fire" in out
    assert "test_panic.py" in out