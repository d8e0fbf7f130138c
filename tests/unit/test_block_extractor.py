"""Unit tests for VEVENT block extraction."""

import pytest

from icsbusy.calendar.block_extractor import extract_event_blocks, normalize_lines

pytestmark = pytest.mark.unit


class TestNormalizeLines:
    """Tests for line splitting and trimming."""

    def test_mixed_line_endings(self):
        """Test CRLF, CR and LF are all treated as line breaks."""
        assert normalize_lines("A:1\r\nB:2\rC:3\nD:4") == ["A:1", "B:2", "C:3", "D:4"]

    def test_trims_and_drops_blank_lines(self):
        """Test whitespace is trimmed and empty lines removed."""
        assert normalize_lines("  A:1  \r\n\r\n   \r\nB:2") == ["A:1", "B:2"]


class TestExtractEventBlocks:
    """Tests for extract_event_blocks()."""

    def test_single_block(self, make_event, make_feed):
        """Test one VEVENT yields one block including its markers."""
        blocks = extract_event_blocks(make_feed(make_event()))
        assert len(blocks) == 1
        assert blocks[0].lines[0] == "BEGIN:VEVENT"
        assert blocks[0].lines[-1] == "END:VEVENT"
        assert "UID:event-1" in blocks[0].lines

    def test_blocks_in_document_order(self, make_event, make_feed):
        """Test multiple blocks keep document order."""
        feed = make_feed(make_event(uid="a"), make_event(uid="b"), make_event(uid="c"))
        uids = [next(line for line in b.lines if line.startswith("UID:")) for b in extract_event_blocks(feed)]
        assert uids == ["UID:a", "UID:b", "UID:c"]

    def test_unterminated_block_at_end_discarded(self, make_event):
        """Test a block without END:VEVENT at end of input is dropped."""
        text = make_event(uid="complete") + "\r\nBEGIN:VEVENT\r\nUID:dangling\r\n"
        blocks = extract_event_blocks(text)
        assert len(blocks) == 1
        assert "UID:complete" in blocks[0].lines

    def test_begin_inside_block_discards_previous(self):
        """Test a second BEGIN:VEVENT before END discards the open block."""
        text = "\n".join(
            [
                "BEGIN:VEVENT",
                "UID:lost",
                "BEGIN:VEVENT",
                "UID:kept",
                "END:VEVENT",
            ]
        )
        blocks = extract_event_blocks(text)
        assert len(blocks) == 1
        assert blocks[0].lines == ["BEGIN:VEVENT", "UID:kept", "END:VEVENT"]

    def test_end_outside_block_ignored(self, make_event):
        """Test a stray END:VEVENT does not create a block."""
        text = "END:VEVENT\r\n" + make_event()
        assert len(extract_event_blocks(text)) == 1

    def test_markers_case_insensitive(self):
        """Test lower-case markers are recognised."""
        blocks = extract_event_blocks("begin:vevent\nUID:x\nend:vevent")
        assert len(blocks) == 1

    def test_no_events(self):
        """Test input without records yields no blocks."""
        assert extract_event_blocks("BEGIN:VCALENDAR\nVERSION:2.0\nEND:VCALENDAR") == []
        assert extract_event_blocks("") == []

    def test_calendar_method_stamped_on_blocks(self, make_event, make_feed):
        """Test the VCALENDAR METHOD is carried onto each block."""
        blocks = extract_event_blocks(make_feed(make_event(), method="CANCEL"))
        assert blocks[0].method == "CANCEL"

    def test_method_scoped_to_enclosing_calendar(self, make_event, make_feed):
        """Test a METHOD does not carry over into a following VCALENDAR."""
        text = make_feed(make_event(uid="x"), method="CANCEL") + make_feed(make_event(uid="y"))
        blocks = extract_event_blocks(text)
        assert [block.method for block in blocks] == ["CANCEL", None]

    def test_method_of_each_calendar_applies(self, make_event, make_feed):
        """Test each VCALENDAR stamps its own METHOD."""
        text = make_feed(make_event(uid="x"), method="CANCEL") + make_feed(
            make_event(uid="y"), method="PUBLISH"
        )
        assert [block.method for block in extract_event_blocks(text)] == ["CANCEL", "PUBLISH"]

    def test_no_method(self, make_event, make_feed):
        """Test blocks have no method when the calendar has none."""
        assert extract_event_blocks(make_feed(make_event()))[0].method is None

    def test_folded_lines_are_not_unfolded(self):
        """Test a folded continuation becomes its own trimmed line."""
        text = "BEGIN:VEVENT\r\nDESCRIPTION:first part\r\n  second part\r\nEND:VEVENT"
        blocks = extract_event_blocks(text)
        assert blocks[0].lines == [
            "BEGIN:VEVENT",
            "DESCRIPTION:first part",
            "second part",
            "END:VEVENT",
        ]
