"""
Tests for Exceptions Module

Tests for kouban/core/exceptions.py
"""

from kouban.core.exceptions import (
    AllChunksFailedError,
    ContentBlockedError,
    InputEmptyError,
    KoubanError,
    NotAScriptError,
    OracleCallError,
    OracleError,
    OracleSchemaError,
    PipelineError,
)


class TestExceptionHierarchy:
    """Tests for the exception taxonomy."""

    def test_everything_is_kouban_error(self):
        for error in (
            InputEmptyError(),
            NotAScriptError("prose"),
            OracleCallError("openai", "timeout"),
            OracleSchemaError("bad"),
            AllChunksFailedError(3),
        ):
            assert isinstance(error, KoubanError)

    def test_content_block_is_call_error(self):
        error = ContentBlockedError("openai", "PROHIBITED_CONTENT")

        assert isinstance(error, OracleCallError)
        assert isinstance(error, OracleError)
        assert error.is_content_block
        assert error.details["provider"] == "openai"

    def test_str_includes_details(self):
        """Test details are appended to the message."""
        error = KoubanError("Something failed", {"chunk": 2})

        assert str(error) == "Something failed | Details: {'chunk': 2}"
        assert str(KoubanError("plain")) == "plain"


class TestErrorDetails:
    """Tests for error-specific attributes."""

    def test_not_a_script_records_source(self):
        error = NotAScriptError("台本形式ではありません", source="chunk 0")

        assert error.reason == "台本形式ではありません"
        assert error.details == {"source": "chunk 0"}
        assert "台本形式ではありません" in error.message

    def test_all_chunks_failed(self):
        error = AllChunksFailedError(2, {0: "timeout", 1: "timeout"})

        assert isinstance(error, PipelineError)
        assert error.total == 2
        assert error.details["failures"] == {0: "timeout", 1: "timeout"}

    def test_schema_error_keeps_raw_preview(self):
        error = OracleSchemaError("not json", raw="x" * 500)

        assert len(error.details["raw_preview"]) == 200
