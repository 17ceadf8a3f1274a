"""Tests for stackeye.output: format resolution, stream split, and redaction."""

from __future__ import annotations

import json

import pytest

from stackeye import output as output_module
from stackeye.output import OutputFormat, OutputManager, _should_disable_color, get_output, reset_output, set_output


@pytest.fixture()
def non_tty(monkeypatch):
    monkeypatch.setattr("stackeye.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    monkeypatch.setattr("stackeye.output._is_tty", lambda: True)
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.delenv("TERM", raising=False)


class TestFormatResolution:
    def test_piped_stdout_means_plain(self, non_tty):
        assert OutputManager().format is OutputFormat.PLAIN

    def test_terminal_means_rich(self, tty):
        assert OutputManager().format is OutputFormat.RICH

    def test_terminal_without_colour_means_plain(self, tty):
        assert OutputManager(no_color=True).format is OutputFormat.PLAIN

    def test_explicit_format_wins(self, tty):
        assert OutputManager(format=OutputFormat.JSON).format is OutputFormat.JSON


@pytest.mark.parametrize(
    ("no_color", "term", "disabled"),
    [("", "xterm-256color", True), ("1", None, True), (None, "dumb", True), (None, "xterm-256color", False)],
)
def test_colour_environment(monkeypatch, no_color, term, disabled):
    for name, value in (("NO_COLOR", no_color), ("TERM", term)):
        if value is None:
            monkeypatch.delenv(name, raising=False)
        else:
            monkeypatch.setenv(name, value)
    assert _should_disable_color() is disabled


class TestStdoutStderrDiscipline:
    def test_print_data_goes_to_stdout(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).print_data("hello world")
        captured = capfd.readouterr()
        assert captured.out == "hello world\n"
        assert captured.err == ""

    @pytest.mark.parametrize("method", ["info", "success", "warning", "error", "suggest"])
    def test_diagnostics_go_to_stderr(self, capfd, non_tty, method):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        getattr(mgr, method)("diagnostic text")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "diagnostic text" in captured.err

    def test_error_and_warning_prefixes(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.error("boom")
        mgr.warning("careful")
        err = capfd.readouterr().err
        assert "Error: boom" in err
        assert "Warning: careful" in err

    def test_suggest_has_arrow(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).suggest("stackeye login")
        assert "→ stackeye login" in capfd.readouterr().err


class TestQuietAndVerbose:
    def test_quiet_suppresses_info_but_not_errors(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.info("chatter")
        mgr.success("done")
        mgr.error("real problem")
        err = capfd.readouterr().err
        assert "chatter" not in err
        assert "done" not in err
        assert "real problem" in err

    def test_debug_hidden_by_default(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).debug("trace")
        assert capfd.readouterr().err == ""

    def test_debug_shown_with_verbose(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True).debug("trace")
        assert "[debug] trace" in capfd.readouterr().err

    def test_markup_in_messages_is_literal(self, capfd, non_tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        OutputManager(format=OutputFormat.PLAIN, verbose=True).debug("org [bold]Acme[/bold]")
        assert "[bold]Acme[/bold]" in capfd.readouterr().err


class TestPrintTable:
    def test_table_json_mode(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True)
        mgr.print_table(["NAME", "API URL"], [["acme-corp", "https://api.stackeye.io"]])
        parsed = json.loads(capfd.readouterr().out)
        assert parsed == [{"NAME": "acme-corp", "API URL": "https://api.stackeye.io"}]

    def test_table_plain_mode(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.print_table(["CURRENT", "NAME"], [["*", "acme-corp"], ["", "acme-corp-dev"]])
        lines = capfd.readouterr().out.strip("\n").split("\n")
        assert lines == ["CURRENT\tNAME", "*\tacme-corp", "\tacme-corp-dev"]

    def test_table_rich_mode(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.RICH, no_color=True)
        mgr.print_table(["NAME"], [["acme-corp"]], title="Contexts")
        out = capfd.readouterr().out
        assert "acme-corp" in out
        assert "Contexts" in out


class TestPrintFields:
    def test_plain_fields_are_aligned(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.print_fields([("Context", "acme-corp"), ("API URL", "https://api.stackeye.io")])
        assert capfd.readouterr().out.splitlines() == [
            "Context: acme-corp",
            "API URL: https://api.stackeye.io",
        ]

    def test_json_fields_are_one_object(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True)
        mgr.print_fields([("Context", "acme-corp"), ("Organization", "Acme Corp")])
        assert json.loads(capfd.readouterr().out) == {
            "Context": "acme-corp",
            "Organization": "Acme Corp",
        }


def test_rich_fields_render_labels_and_values(capfd, non_tty):
    mgr = OutputManager(format=OutputFormat.RICH, no_color=True)
    mgr.print_fields([("Context", "acme-corp"), ("Organization", "Acme [Corp]")])
    out = capfd.readouterr().out
    assert "Context:" in out
    assert "acme-corp" in out
    assert "Acme [Corp]" in out


class TestGlobalInstance:
    def test_get_output_creates_default(self):
        reset_output()
        assert isinstance(get_output(), OutputManager)

    def test_set_output_is_used_by_helpers(self, capfd, non_tty):
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True))
        output_module.debug("via helper")
        output_module.print_data("data line")
        captured = capfd.readouterr()
        assert "via helper" in captured.err
        assert captured.out == "data line\n"


class TestRedaction:
    KEY = "se_" + "0123456789abcdef" * 4

    def test_redact_masks_full_keys(self):
        assert output_module.redact(f"got {self.KEY} back") == "got se_**** back"

    def test_redact_leaves_masked_and_short_values(self):
        assert output_module.redact("se_0…cdef") == "se_0…cdef"
        assert output_module.redact("se_nothex") == "se_nothex"

    @pytest.mark.parametrize("method", ["info", "warning", "error", "suggest", "debug"])
    def test_diagnostics_never_print_keys(self, capfd, non_tty, method):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True)
        getattr(mgr, method)(f"callback ?api_key={self.KEY}&org_id=org_123")
        err = capfd.readouterr().err
        assert self.KEY not in err
        assert "api_key=se_****&org_id=org_123" in err

    def test_data_output_is_not_redacted(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).print_data(self.KEY)
        assert capfd.readouterr().out == self.KEY + "\n"
