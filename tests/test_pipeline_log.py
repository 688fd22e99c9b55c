"""Tests for pipeline/log.py module."""

from slugbuilder.pipeline.log import STAGE_PREFIX, DiagnosticLog


class TestDiagnosticLog:
    """Tests for DiagnosticLog."""

    def test_reset_truncates(self, tmp_path):
        """reset() should drop the previous build's content."""
        log = DiagnosticLog(tmp_path / "logs" / "build.log")
        log.reset()
        log.write("old build")
        log.reset()

        assert "old build" not in log.read_text()
        assert log.lines()[0].startswith("# Build started:")

    def test_appends_in_order(self, tmp_path):
        """Lines should be appended in call order."""
        log = DiagnosticLog(tmp_path / "build.log")
        log.reset()
        log.stage("Installing binaries")
        log.write("one\n")
        with log.stream() as f:
            f.write("streamed\n")
        log.write("two")

        assert log.lines()[1:] == [
            f"{STAGE_PREFIX}Installing binaries",
            "one",
            "streamed",
            "two",
        ]

    def test_read_missing(self, tmp_path):
        """Reading a log that was never written returns an empty string."""
        assert DiagnosticLog(tmp_path / "none.log").read_text() == ""
