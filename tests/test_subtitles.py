# tests/test_subtitles.py
import pytest

from subplay.subtitles import (
    Cue,
    SubtitleFormat,
    ass_time_to_ms,
    format_from_filename,
    parse,
)

SRT = """1
00:00:01,000 --> 00:00:03,000
Hello

2
00:01:02,500 --> 00:01:05,000
<i>Two</i> lines
<b>here</b>

3
00:00:10,000 --> 00:00:12,000
Out of order is kept
"""

VTT = """WEBVTT
Kind: captions
Language: en

NOTE this block is header

intro
00:00:01.000 --> 00:00:02.500 align:start position:10%
<v Bob>Hi there</v>

00:00:03.000 --> 00:00:04.000
Line one
Line two

stray text outside any cue

00:01:00.250 --> 00:01:01.000
Last
"""

ASS = r"""[Script Info]
Title: Test
ScriptType: v4.00+

[V4+ Styles]
Format: Name, Fontname, Fontsize
Style: Default,Arial,20

[Events]
Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text
Dialogue: 0,0:00:01.00,0:00:02.50,Default,,0,0,0,,{\i1}Hello{\i0}, world
Dialogue: 0,0:00:03.10,0:00:04.00,Default,,0,0,0,,First\NSecond
Comment: 0,0:00:05.00,0:00:06.00,Default,,0,0,0,,not shown
Dialogue: 0,1:02:03.45,1:02:04.00,Default,,0,0,0,,Late
"""


@pytest.mark.parametrize(
    "content, fmt, expected_count",
    [(SRT, "srt", 3), (VTT, "vtt", 3), (ASS, "ass", 3)],
)
def test_well_formed_fixtures_parse_fully(content, fmt, expected_count):
    cues = parse(content, fmt)
    assert len(cues) == expected_count
    assert all(c.start_ms <= c.end_ms for c in cues)
    assert all(isinstance(c, Cue) for c in cues)


def test_srt_timing_and_text():
    cues = parse(SRT, SubtitleFormat.SRT)
    assert cues[0] == Cue(1000, 3000, "Hello")
    assert (cues[1].start_ms, cues[1].end_ms) == (62500, 65000)
    assert cues[1].text == "Two lines\nhere"


def test_srt_keeps_source_order():
    cues = parse(SRT, "srt")
    assert [c.start_ms for c in cues] == [1000, 62500, 10000]


def test_srt_malformed_blocks_are_isolated():
    broken = SRT + """
4
00:00:20,000 -> 00:00:21,000
single arrow

5
0:00:22,000 --> 00:00:23,000
short hour field

only one line

6
00:00:30,000 --> 00:00:29,000
ends before it starts

7
00:00:40,000 --> 00:00:41,000
Still fine
"""
    cues = parse(broken, "srt")
    assert [c.text for c in cues] == ["Hello", "Two lines\nhere", "Out of order is kept", "Still fine"]


def test_srt_block_needs_three_lines():
    assert parse("1\n00:00:01,000 --> 00:00:02,000\n", "srt") == ()


def test_srt_crlf_bom_and_blank_lines_with_spaces():
    content = "\ufeff1\r\n00:00:01,000 --> 00:00:02,000\r\nA\r\n  \r\n\r\n2\r\n00:00:03,000 --> 00:00:04,000\r\nB\r\n"
    cues = parse(content, "srt")
    assert [c.text for c in cues] == ["A", "B"]


def test_vtt_skips_header_and_strips_tags():
    cues = parse(VTT, "vtt")
    assert cues[0] == Cue(1000, 2500, "Hi there")
    assert cues[1].text == "Line one\nLine two"
    assert cues[2] == Cue(60250, 61000, "Last")


def test_vtt_bad_timing_line_is_skipped():
    content = "WEBVTT\n\n00:00:01,000 --> 00:00:02,000\nwrong separator\n\n00:00:03.000 --> 00:00:04.000\nok\n"
    cues = parse(content, "vtt")
    assert cues == (Cue(3000, 4000, "ok"),)


def test_vtt_cue_at_end_of_input_without_trailing_newline():
    cues = parse("WEBVTT\n\n00:00:01.000 --> 00:00:02.000\nend", "vtt")
    assert cues == (Cue(1000, 2000, "end"),)


def test_ass_fields_text_commas_and_overrides():
    cues = parse(ASS, "ass")
    assert cues[0] == Cue(1000, 2500, "Hello, world")
    assert cues[1] == Cue(3100, 4000, "First\nSecond")
    assert cues[2] == Cue(3_723_450, 3_724_000, "Late")


def test_ass_field_positions_come_from_format_line():
    content = "[Events]\nFormat: Layer, End, Start, Style, Text\nDialogue: 0,0:00:05.00,0:00:01.00,Default,Swapped\n"
    assert parse(content, "ass") == (Cue(1000, 5000, "Swapped"),)


def test_ass_dialogue_without_format_or_fields_is_dropped():
    no_format = "[Events]\nDialogue: 0,0:00:01.00,0:00:02.00,Default,,0,0,0,,Lost\n"
    assert parse(no_format, "ass") == ()

    no_text = "[Events]\nFormat: Layer, Start, End\nDialogue: 0,0:00:01.00,0:00:02.00\n"
    assert parse(no_text, "ass") == ()


def test_ass_dialogue_outside_events_is_ignored():
    content = ASS + "\n[Fonts]\nDialogue: 0,0:00:09.00,0:00:10.00,Default,,0,0,0,,After fonts\n"
    assert len(parse(content, "ass")) == 3


def test_ass_time_uses_centiseconds():
    assert ass_time_to_ms("0:00:01.50") == 1500
    assert ass_time_to_ms("garbage") == 0


def test_ssa_alias_and_unknown_format():
    assert len(parse(ASS, "ssa")) == 3
    assert parse(SRT, "sub") == ()


@pytest.mark.parametrize(
    "name, expected",
    [
        ("movie.SRT", SubtitleFormat.SRT),
        ("a/b/clip.vtt", SubtitleFormat.VTT),
        ("anime.ass", SubtitleFormat.ASS),
        ("old.ssa", SubtitleFormat.ASS),
        ("notes.txt", None),
        ("", None),
    ],
)
def test_format_from_filename(name, expected):
    assert format_from_filename(name) == expected


def test_empty_content():
    assert parse("", "srt") == ()
    assert parse("", "vtt") == ()
    assert parse("", "ass") == ()
