"""
Unit tests for RuleEntry and RulesetDocument.

Render/parse must be lossless; every entry is exactly one line.
"""
import pytest

from casebook.errors import ValidationError
from casebook.ruleset.document import HEADER_LINES, RulesetDocument
from casebook.ruleset.schema import RuleCategory, RuleEntry


class TestRuleEntry:

    def test_render_with_source(self):
        entry = RuleEntry(RuleCategory.WARNING, "Never trade the first bar", "PM-007")
        assert entry.render() == "- [WARNING] Never trade the first bar (PM-007)"

    def test_render_manual(self):
        entry = RuleEntry.create("directive", "Run parity tests", "manual")
        assert entry.source_id is None
        assert entry.render() == "- [DIRECTIVE] Run parity tests (manual)"

    def test_parse_line_roundtrip(self):
        entry = RuleEntry(RuleCategory.PARAMETER, "atr_period = 14 (was 10)", "PM-012")
        assert RuleEntry.parse_line(entry.render()) == entry

    def test_parse_rejects_garbage(self):
        with pytest.raises(ValidationError):
            RuleEntry.parse_line("* just a bullet")

    def test_key_is_stable_and_distinct(self):
        a = RuleEntry(RuleCategory.WARNING, "Same text", "PM-001")
        b = RuleEntry(RuleCategory.WARNING, "Same text", "PM-002")
        assert a.key == RuleEntry(RuleCategory.WARNING, "Same text", "PM-001").key
        assert a.key != b.key
        assert len(a.key) == 12

    def test_coerce_dict_and_tuple(self):
        from_tuple = RuleEntry.coerce(("warning", "x", "pm-001"))
        from_dict = RuleEntry.coerce({"category": "WARNING", "statement": "x", "source_id": "PM-001"})
        assert from_tuple == from_dict

    def test_coerce_rejects_other(self):
        with pytest.raises(ValidationError):
            RuleEntry.coerce("WARNING: x")

    @pytest.mark.parametrize("statement", ["", "   ", "two\nlines", " padded"])
    def test_validate_rejects(self, statement):
        with pytest.raises(ValidationError):
            RuleEntry(RuleCategory.WARNING, statement).validate()


class TestRulesetDocument:

    def _document(self):
        return RulesetDocument(
            revision=3,
            entries=(
                RuleEntry(RuleCategory.WARNING, "Check session filter", "PM-001"),
                RuleEntry(RuleCategory.DIRECTIVE, "Pin the data snapshot", None),
            ),
        )

    def test_line_count_includes_header(self):
        doc = self._document()
        assert doc.line_count == HEADER_LINES + 2
        assert len(doc.render().splitlines()) == doc.line_count

    def test_render_parse_roundtrip(self):
        doc = self._document()
        assert RulesetDocument.parse(doc.render()) == doc

    def test_parse_ignores_blank_lines(self):
        text = self._document().render().replace("\n- [DIRECTIVE]", "\n\n- [DIRECTIVE]")
        assert RulesetDocument.parse(text) == self._document()

    def test_parse_requires_header(self):
        with pytest.raises(ValidationError, match="must start"):
            RulesetDocument.parse("- [WARNING] x (manual)\n")

    def test_parse_requires_revision_marker(self):
        with pytest.raises(ValidationError, match="revision marker"):
            RulesetDocument.parse("# Operating Rules\n- [WARNING] x (manual)\n")

    def test_parse_reports_bad_entry(self):
        text = "# Operating Rules\n<!-- casebook revision=1 -->\n- [INFO] x (manual)\n"
        with pytest.raises(ValidationError, match="Unknown rule category"):
            RulesetDocument.parse(text)

    def test_apply_bumps_revision(self):
        doc = self._document()
        new_entry = RuleEntry(RuleCategory.PARAMETER, "risk_pct = 0.5", None)
        updated = doc.apply([new_entry], removals=[doc.entries[0].key])

        assert updated.revision == 4
        assert updated.entries == (doc.entries[1], new_entry)
        assert doc.revision == 3

    def test_apply_unknown_removal(self):
        with pytest.raises(ValidationError):
            self._document().apply([], removals=["000000000000"])

    def test_projected_line_count(self):
        doc = self._document()
        extra = [RuleEntry(RuleCategory.WARNING, f"w{i}", None) for i in range(3)]
        assert doc.projected_line_count(extra) == 7
        assert doc.projected_line_count(extra, [doc.entries[0].key, "unknown"]) == 6
