"""Tests for the CLI module: arg parsing, exit codes, output files, end-to-end."""

from __future__ import annotations

from pathlib import Path

import pytest

from burro.cli import build_parser, compile_source, main, resolve_options

# ---------------------------------------------------------------------------
# Arg parsing via build_parser
# ---------------------------------------------------------------------------


class TestArgParsing:
    def test_input_only(self) -> None:
        ns = build_parser().parse_args(["compile", "doc.bur"])
        assert ns.command == "compile"
        assert ns.input == "doc.bur"
        assert ns.output is None
        assert ns.config is None
        assert not ns.debug
        assert not ns.verbose

    def test_output_flag(self) -> None:
        ns = build_parser().parse_args(["compile", "doc.bur", "-o", "out.pdf"])
        assert ns.output == "out.pdf"

    def test_debug_and_verbose(self) -> None:
        ns = build_parser().parse_args(["compile", "doc.bur", "--debug", "-v"])
        assert ns.debug
        assert ns.verbose

    def test_subcommand_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestResolveOptions:
    def test_default_output_beside_source(self, tmp_path: Path) -> None:
        doc = tmp_path / "letter.bur"
        ns = build_parser().parse_args(["compile", str(doc)])
        opts = resolve_options(ns)
        assert opts.output_file == tmp_path / "letter.pdf"

    def test_explicit_output(self, tmp_path: Path) -> None:
        doc = tmp_path / "letter.bur"
        ns = build_parser().parse_args(["compile", str(doc), "-o", str(tmp_path / "x.pdf")])
        assert resolve_options(ns).output_file == tmp_path / "x.pdf"


# ---------------------------------------------------------------------------
# Exit codes and output files
# ---------------------------------------------------------------------------


class TestExitCodes:
    def test_success_writes_pdf(self, tmp_path: Path) -> None:
        doc = tmp_path / "ok.bur"
        doc.write_text(".align[center]\n.bold[Burro]\n")
        assert main(["compile", str(doc)]) == 0
        out = tmp_path / "ok.pdf"
        assert out.read_bytes().startswith(b"%PDF-")

    def test_syntax_error_returns_1(self, tmp_path: Path, capsys) -> None:
        doc = tmp_path / "bad.bur"
        doc.write_text(".bold[unterminated")
        assert main(["compile", str(doc)]) == 1
        err = capsys.readouterr().err
        assert "unclosed" in err
        assert f"{doc}:1:1" in err
        assert not (tmp_path / "bad.pdf").exists()

    def test_undefined_tab_list_returns_1(self, tmp_path: Path, capsys) -> None:
        doc = tmp_path / "tabs.bur"
        doc.write_text("Intro\n\n.load_tabs[L]\n")
        assert main(["compile", str(doc)]) == 1
        err = capsys.readouterr().err
        assert "undefined tab list: L" in err
        assert f"{doc}:3:1" in err
        assert ".load_tabs[L]" in err
        assert not (tmp_path / "tabs.pdf").exists()

    def test_missing_input_returns_1(self, tmp_path: Path, capsys) -> None:
        assert main(["compile", str(tmp_path / "nope.bur")]) == 1
        assert "cannot read" in capsys.readouterr().err

    def test_bad_config_returns_2(self, tmp_path: Path, capsys) -> None:
        doc = tmp_path / "doc.bur"
        doc.write_text("x")
        (tmp_path / "burro.toml").write_text("output_suffix = [")
        assert main(["compile", str(doc)]) == 2
        assert "invalid config file" in capsys.readouterr().err

    def test_font_error_returns_1(self, tmp_path: Path, capsys) -> None:
        doc = tmp_path / "doc.bur"
        doc.write_text(".family[garamond]\nx")
        assert main(["compile", str(doc)]) == 1
        assert "unknown font family: garamond" in capsys.readouterr().err


class TestDebugDump:
    def test_debug_dumps_ast(self, tmp_path: Path, capsys) -> None:
        doc = tmp_path / "dbg.bur"
        doc.write_text("#define(x)(Hi)\n.bold[~x]\n\nplain")
        assert main(["compile", str(doc), "--debug"]) == 0
        err = capsys.readouterr().err
        assert "Document" in err
        assert "~x" in err
        assert "Command .bold" in err
        assert "Paragraph" in err


class TestCompileSource:
    def test_basic(self, tmp_path: Path) -> None:
        ns = build_parser().parse_args(["compile", str(tmp_path / "doc.bur")])
        layout = compile_source("Hello", resolve_options(ns))
        assert [p.text for p in layout.placements] == ["Hello"]
        assert layout.placements[0].font == "Times-Roman"
