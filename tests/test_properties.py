"""Tests for the flat key/value property file codec."""

from __future__ import annotations

import io

from repomap.project.properties import dump_properties, load_properties


def _round_trip(props: dict[str, str]) -> dict[str, str]:
    out = io.StringIO()
    dump_properties(props, out, "test")
    return load_properties(io.StringIO(out.getvalue()))


class TestLoad:
    def test_simple_entries(self):
        text = "a=1\nb = 2\nc:3\nd 4\n"
        assert load_properties(io.StringIO(text)) == {
            "a": "1", "b": "2", "c": "3", "d": "4",
        }

    def test_comments_and_blank_lines_skipped(self):
        text = "# comment\n! other\n\n   \n.gitdir=.git\n"
        assert load_properties(io.StringIO(text)) == {".gitdir": ".git"}

    def test_line_continuation(self):
        text = "key=one\\\n    two\n"
        assert load_properties(io.StringIO(text)) == {"key": "onetwo"}

    def test_escaped_separator_in_key(self):
        text = "a\\=b=c\n"
        assert load_properties(io.StringIO(text)) == {"a=b": "c"}

    def test_unicode_escape(self):
        text = "k=caf\\u00e9\n"
        assert load_properties(io.StringIO(text)) == {"k": "café"}

    def test_empty_value(self):
        assert load_properties(io.StringIO("k=\n")) == {"k": ""}


class TestDump:
    def test_comment_written(self):
        out = io.StringIO()
        dump_properties({"k": "v"}, out, "GitProjectData")
        lines = out.getvalue().splitlines()
        assert lines[0] == "#GitProjectData"
        assert lines[-1] == "k=v"

    def test_keys_sorted(self):
        out = io.StringIO()
        dump_properties({"b.gitdir": "x", "a.gitdir": "y"}, out)
        entries = [l for l in out.getvalue().splitlines() if not l.startswith("#")]
        assert entries == ["a.gitdir=y", "b.gitdir=x"]

    def test_special_characters_survive(self):
        props = {
            "dir with space.gitdir": "C:/repo/.git",
            "a=b:c#d.gitdir": "../.git",
            "unicode/é.gitdir": "x\ty",
        }
        assert _round_trip(props) == props

    def test_leading_space_in_value_survives(self):
        assert _round_trip({"k": "  v"}) == {"k": "  v"}
