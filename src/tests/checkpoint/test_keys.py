"""Unit tests for checkpoint key encoding."""

import pytest

from src.checkpoint_redis.errors import KeyFormatError
from src.checkpoint_redis.keys import (
    checkpoint_pattern,
    escape_field,
    make_checkpoint_key,
    make_writes_key,
    parse_checkpoint_key,
    parse_writes_key,
    thread_patterns,
    unescape_field,
    writes_pattern,
)


class TestCheckpointKey:
    """Test suite for checkpoint keys."""

    def test_make_checkpoint_key(self):
        """Test the plain key layout."""
        assert make_checkpoint_key("1", "", "abc") == "checkpoint:1::abc"
        assert make_checkpoint_key("t", "ns", "id") == "checkpoint:t:ns:id"

    @pytest.mark.parametrize(
        "thread_id,checkpoint_ns,checkpoint_id",
        [
            ("1", "", "1ef4f797-8335-6428-8001-8a1503f9b875"),
            ("thread", "child", "2024-04-19T17:19:07.952Z"),
            ("a:b", "parent:task|child", "x%3Ay"),
        ],
    )
    def test_round_trip(self, thread_id, checkpoint_ns, checkpoint_id):
        """Test parse(build(...)) returns the original fields."""
        parsed = parse_checkpoint_key(
            make_checkpoint_key(thread_id, checkpoint_ns, checkpoint_id)
        )
        assert parsed.thread_id == thread_id
        assert parsed.checkpoint_ns == checkpoint_ns
        assert parsed.checkpoint_id == checkpoint_id

    def test_parse_bytes(self):
        """Test keys returned by Redis as bytes are accepted."""
        parsed = parse_checkpoint_key(b"checkpoint:1::abc")
        assert parsed.thread_id == "1"
        assert parsed.checkpoint_ns == ""
        assert parsed.checkpoint_id == "abc"

    def test_wrong_prefix(self):
        """Test a writes key is rejected by the checkpoint parser."""
        with pytest.raises(KeyFormatError, match="start with 'checkpoint'"):
            parse_checkpoint_key("writes:1::abc:task:0")

    def test_wrong_segment_count(self):
        """Test a key with extra segments is rejected."""
        with pytest.raises(KeyFormatError):
            parse_checkpoint_key("checkpoint:1::abc:extra")


class TestWritesKey:
    """Test suite for pending write keys."""

    def test_make_writes_key(self):
        """Test the index suffix is appended."""
        assert make_writes_key("1", "", "abc", "task", 0) == "writes:1::abc:task:0"

    def test_make_writes_key_without_index(self):
        """Test the index suffix is omitted for None."""
        assert make_writes_key("1", "", "abc", "task", None) == "writes:1::abc:task"

    def test_round_trip(self):
        """Test parse(build(...)) for writes keys."""
        parsed = parse_writes_key(make_writes_key("t:1", "ns", "cp", "task", 3))
        assert parsed.thread_id == "t:1"
        assert parsed.checkpoint_ns == "ns"
        assert parsed.checkpoint_id == "cp"
        assert parsed.task_id == "task"
        assert parsed.idx == 3

    def test_parse_without_index(self):
        """Test idx is None when the suffix is absent."""
        parsed = parse_writes_key("writes:1::abc:task")
        assert parsed.task_id == "task"
        assert parsed.idx is None

    def test_wrong_prefix(self):
        """Test a checkpoint key is rejected by the writes parser."""
        with pytest.raises(KeyFormatError, match="start with 'writes'"):
            parse_writes_key("checkpoint:1::abc")

    def test_non_numeric_index(self):
        """Test a non-numeric index is rejected."""
        with pytest.raises(KeyFormatError):
            parse_writes_key("writes:1::abc:task:first")


class TestEscaping:
    """Test suite for field escaping and scan patterns."""

    def test_plain_values_unchanged(self):
        """Test ordinary ids are stored verbatim."""
        assert escape_field("1ef4f797-8335") == "1ef4f797-8335"

    def test_escape_round_trip(self):
        """Test separators and escape characters round-trip."""
        for value in ["a:b", "100%", "%3A", "::", "%25:%"]:
            assert ":" not in escape_field(value)
            assert unescape_field(escape_field(value)) == value

    def test_checkpoint_pattern(self):
        """Test the namespace wildcard pattern."""
        assert checkpoint_pattern("1", "") == "checkpoint:1::*"

    def test_patterns_escape_glob_characters(self):
        """Test glob metacharacters in ids are matched literally."""
        assert checkpoint_pattern("a*", "") == "checkpoint:a\\*::*"
        assert writes_pattern("t?", "[ns]", "cp") == "writes:t\\?:\\[ns\\]:cp:*"

    def test_thread_patterns(self):
        """Test thread patterns cover both key families in all namespaces."""
        assert thread_patterns("1") == ["checkpoint:1:*", "writes:1:*"]
