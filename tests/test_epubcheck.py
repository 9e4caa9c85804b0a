"""Tests for locating and running epubcheck."""

import os
import shutil
import subprocess

from chapbook import epubcheck
from chapbook.epubcheck import find_epubcheck, parse_summary, validate_epub


SUMMARY_OK = "Validating using EPUB version 3.3 rules.\nNo errors or warnings detected.\nMessages: 0 fatals / 0 errors / 0 warnings / 0 infos\n"
SUMMARY_BAD = (
    "ERROR(RSC-005): book.epub/EPUB/text/ch001.xhtml(12,5): Error while parsing file\n"
    "Messages: 0 fatals / 2 errors / 1 warning / 0 infos\n"
)


class TestParseSummary:
    def test_counts(self):
        assert parse_summary(SUMMARY_BAD) == (0, 2, 1)
        assert parse_summary(SUMMARY_OK) == (0, 0, 0)

    def test_no_summary(self):
        assert parse_summary("java: command not found") is None


class TestFindEpubcheck:
    def test_environment_jar(self, tmp_path, monkeypatch):
        jar = tmp_path / "epubcheck.jar"
        jar.write_bytes(b"")
        monkeypatch.setenv("EPUBCHECK_JAR", str(jar))

        assert find_epubcheck() == ("jar", str(jar))

    def test_command_on_path(self, monkeypatch):
        monkeypatch.delenv("EPUBCHECK_JAR", raising=False)
        monkeypatch.setattr(shutil, "which", lambda name: "/usr/bin/epubcheck")

        assert find_epubcheck() == ("cmd", "epubcheck")

    def test_newest_jar_under_tools(self, tmp_path, monkeypatch):
        monkeypatch.delenv("EPUBCHECK_JAR", raising=False)
        monkeypatch.setattr(shutil, "which", lambda name: None)
        for version in ("epubcheck-4.2.6", "epubcheck-5.1.0"):
            d = tmp_path / "tools" / version
            d.mkdir(parents=True)
            (d / "epubcheck.jar").write_bytes(b"")

        mode, path = find_epubcheck(str(tmp_path))

        assert mode == "jar"
        assert path == os.path.join(str(tmp_path), "tools", "epubcheck-5.1.0", "epubcheck.jar")


class TestValidateEpub:
    def test_unavailable(self, monkeypatch, capsys):
        monkeypatch.setattr(epubcheck, "find_epubcheck", lambda project_root=None: (None, None))

        assert validate_epub("book.epub", verbose=True) is None
        assert "epubcheck not found" in capsys.readouterr().out

    def test_valid(self, monkeypatch, capsys):
        calls = []
        monkeypatch.setattr(epubcheck, "find_epubcheck", lambda project_root=None: ("cmd", "epubcheck"))
        monkeypatch.setattr(
            subprocess, "run",
            lambda cmd, **kw: calls.append(cmd) or subprocess.CompletedProcess(cmd, 0, SUMMARY_OK, ""),
        )

        assert validate_epub("book.epub") is True
        assert calls == [["epubcheck", "book.epub"]]
        assert "valid (no errors, no warnings)" in capsys.readouterr().out

    def test_errors_and_json_report(self, monkeypatch, capsys):
        calls = []
        monkeypatch.setattr(epubcheck, "find_epubcheck", lambda project_root=None: ("jar", "/opt/epubcheck.jar"))
        monkeypatch.setattr(
            subprocess, "run",
            lambda cmd, **kw: calls.append(cmd) or subprocess.CompletedProcess(cmd, 1, SUMMARY_BAD, ""),
        )

        assert validate_epub("out/book.epub", json_report=True) is False
        assert calls[0][:4] == ["java", "-jar", "/opt/epubcheck.jar", "out/book.epub"]
        assert calls[0][-2:] == ["--json", "out/book_epubcheck.json"]
        out = capsys.readouterr().out
        assert "0 fatal, 2 error(s), 1 warning(s)" in out
        assert "ERROR(RSC-005)" in out
