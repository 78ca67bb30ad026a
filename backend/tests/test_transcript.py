# backend/tests/test_transcript.py
import pytest

from callsim.utils.transcript import (
    PROSPECT,
    REP,
    UNKNOWN,
    Turn,
    analyze_call_flow,
    find_monologues,
    format_transcript,
    identify_phases,
    normalize_speaker,
    normalize_transcript,
    summarize_transcript,
    talk_segments,
)


def _turns(*pairs):
    return [Turn(id=f"t{i}", speaker=speaker, message=message) for i, (speaker, message) in enumerate(pairs)]


class TestNormalization:
    @pytest.mark.parametrize("raw,expected", [
        ("rep", REP),
        ("User", REP),
        ("salesperson", REP),
        ("prospect", PROSPECT),
        ("AI", PROSPECT),
        ("assistant", PROSPECT),
        ("narrator", UNKNOWN),
        ("", UNKNOWN),
        (None, UNKNOWN),
        (7, UNKNOWN),
    ])
    def test_speaker_aliases(self, raw, expected):
        assert normalize_speaker(raw) == expected

    def test_accepts_every_message_key(self):
        turns = normalize_transcript([
            {"speaker": "rep", "message": "one"},
            {"role": "assistant", "text": "two"},
            {"role": "user", "content": "three"},
        ])
        assert [t.message for t in turns] == ["one", "two", "three"]
        assert [t.speaker for t in turns] == [REP, PROSPECT, REP]

    def test_junk_entries_never_raise(self):
        turns = normalize_transcript([None, 42, "hello", {}, {"speaker": "rep"}, {"message": 12}])

        assert len(turns) == 6
        assert all(t.speaker == UNKNOWN for t in turns[:4])
        assert turns[4].speaker == REP and turns[4].message == ""
        assert turns[5].speaker == UNKNOWN and turns[5].message == "12"

    def test_ids_and_timestamps(self):
        turns = normalize_transcript([
            {"id": 99, "speaker": "rep", "message": "hi", "timestamp": "2024-01-01T00:00:00+00:00"},
            {"speaker": "prospect", "message": "hello"},
        ])
        assert turns[0].id == "99"
        assert turns[0].timestamp == "2024-01-01T00:00:00+00:00"
        assert turns[1].id == "t1"
        assert turns[1].timestamp is None

    def test_none_transcript(self):
        assert normalize_transcript(None) == []

    def test_turns_pass_through(self):
        turn = Turn(id="x", speaker=REP, message="kept")
        assert normalize_transcript([turn])[0] is turn

    def test_format_transcript(self):
        text = format_transcript(_turns((REP, "Hi"), (PROSPECT, "Hello")))
        assert text == "REP: Hi\n\nPROSPECT: Hello"


class TestStructure:
    def test_talk_segments(self):
        segments = talk_segments(_turns((REP, "a"), (REP, "b"), (PROSPECT, "c")))
        assert segments == [
            {"speaker": REP, "start_index": 0, "end_index": 1, "turns": 2},
            {"speaker": PROSPECT, "start_index": 2, "end_index": 2, "turns": 1},
        ]
        assert talk_segments([]) == []

    def test_find_monologues(self):
        turns = _turns((PROSPECT, "hi"), (REP, "one"), (REP, "two"), (REP, "three"), (PROSPECT, "ok"))
        monologues = find_monologues(turns)
        assert len(monologues) == 1
        assert monologues[0]["speaker"] == REP
        assert monologues[0]["start_index"] == 1
        assert monologues[0]["content"] == "one two three"

    def test_identify_phases(self):
        turns = _turns(
            (REP, "Good morning, Dana here."),
            (REP, "What does your close look like?"),
            (PROSPECT, "Honestly it's too expensive."),
            (REP, "Could we book a meeting next step?"),
        )
        phases = identify_phases(turns)
        assert [p["phase"] for p in phases] == ["opening", "discovery", "objection-handling", "closing"]
        assert phases[-1] == {"phase": "closing", "start_index": 3, "end_index": 3}

    def test_call_flow_smoothness(self):
        flow = analyze_call_flow(_turns((REP, "Hi"), (PROSPECT, "Hello")))
        assert flow["smoothness"] == "smooth"
        assert flow["monologues"] == []
        assert flow["summary"]["total_turns"] == 2

    def test_summarize_transcript(self):
        summary = summarize_transcript(_turns(
            (REP, "What is your budget?"),
            (PROSPECT, "It's too expensive."),
            (REP, "We help teams save time."),
        ))
        assert summary["total_turns"] == 3
        assert summary["rep_turns"] == 2
        assert summary["prospect_turns"] == 1
        assert summary["questions"] == 1
        assert summary["objections"] == 1
        assert summary["value_props"] == 1
        assert "budget" in summary["key_topics"]
