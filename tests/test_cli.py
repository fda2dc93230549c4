import io
import sys

import pytest

from parindent import __version__
from parindent.cli import main


class TTY(io.StringIO):
    def isatty(self):
        return True


@pytest.fixture
def clj(tmp_path):
    def make(name, text):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path
    return make


def test_version(capsys):
    assert main(["--version"]) == 0
    assert capsys.readouterr().out == f"Parindent {__version__}\n"


def test_no_input_prints_usage(monkeypatch, capsys):
    monkeypatch.setattr(sys, "stdin", TTY())
    assert main([]) == 1
    assert "usage: parindent" in capsys.readouterr().out


def test_prints_formatted_file(clj, capsys):
    path = clj("a.clj", "(foo\nbaz)\n")
    assert main([str(path)]) == 0
    assert capsys.readouterr().out == "(foo\n  baz)\n"
    assert path.read_text(encoding="utf-8") == "(foo\nbaz)\n"


def test_write_in_place(clj, capsys):
    path = clj("a.clj", "(foo\nbaz)\n")
    assert main(["--write", str(path)]) == 0
    assert path.read_text(encoding="utf-8") == "(foo\n  baz)\n"
    out = capsys.readouterr().out
    assert out.startswith(str(path))
    assert "(unchanged)" not in out


def test_write_skips_unchanged_file(clj, capsys):
    path = clj("a.clj", "(foo\n  baz)\n")
    assert main(["--write", str(path)]) == 0
    assert "(unchanged)" in capsys.readouterr().out


def test_write_with_backup(clj, tmp_path):
    path = clj("a.clj", "(foo\nbaz)\n")
    backups = tmp_path / "backups"
    assert main(["--write", "--backup-dir", str(backups), str(path)]) == 0
    saved = list(backups.iterdir())
    assert len(saved) == 1
    assert saved[0].name.startswith("a.clj.bak.")
    assert saved[0].read_text(encoding="utf-8") == "(foo\nbaz)\n"


def test_list_different(clj, capsys):
    changed = clj("changed.clj", "(foo\nbaz)\n")
    clean = clj("clean.clj", "(foo\n  baz)\n")
    assert main(["-l", str(changed), str(clean)]) == 1
    assert capsys.readouterr().out == f"{changed}\n"


def test_list_different_clean(clj, capsys):
    clean = clj("clean.clj", "(foo\n  baz)\n")
    assert main(["--list-different", str(clean)]) == 0
    assert capsys.readouterr().out == ""


def test_glob_patterns(clj, tmp_path, capsys):
    top = clj("a.clj", "(a\nb)\n")
    nested = clj("sub/b.clj", "(a\nb)\n")
    clj("sub/c.txt", "(a\nb)\n")
    assert main(["-l", str(tmp_path / "**" / "*.clj")]) == 1
    assert sorted(capsys.readouterr().out.split()) == sorted([str(top), str(nested)])


def test_parse_error_does_not_stop_other_files(clj, capsys):
    bad = clj("bad.clj", "(foo))\n")
    good = clj("good.clj", "(foo\nbaz)\n")
    assert main([str(bad), str(good)]) == 2
    captured = capsys.readouterr()
    assert f"{bad}:1:5 - Unmatched close-paren." in captured.err
    assert captured.out == "(foo\n  baz)\n"


def test_unreadable_file(tmp_path, capsys):
    missing = tmp_path / "missing.clj"
    assert main([str(missing)]) == 2
    assert f"Unable to read file: {missing}" in capsys.readouterr().err


def test_stdin(monkeypatch, capsys):
    monkeypatch.setattr(sys, "stdin", io.StringIO("(foo\nbaz)"))
    assert main(["--stdin"]) == 0
    assert capsys.readouterr().out == "(foo\n  baz)"


def test_stdin_is_used_when_piped(monkeypatch, capsys):
    monkeypatch.setattr(sys, "stdin", io.StringIO("  (foo)"))
    assert main([]) == 0
    assert capsys.readouterr().out == "(foo)"


def test_stdin_error(monkeypatch, capsys):
    monkeypatch.setattr(sys, "stdin", io.StringIO('(foo "bar\nbaz)'))
    assert main(["--stdin"]) == 2
    assert "stdin:1:5 - String is missing a closing quote." in capsys.readouterr().err
