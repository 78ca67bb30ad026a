# backend/callsim/utils/transcript.py
"""
Transcript boundary handling.

Recorded transcripts arrive from the upstream pipeline in loose shapes
(speaker or role, message or text or content, missing fields, junk
entries). normalize_transcript() maps every accepted shape into one
canonical Turn record.

Also hosts the structural analysis shared by scoring and the session
analytics: speaker segments, monologues, phase walk and flow smoothness.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from callsim.utils import text_patterns as tp

REP = "rep"
PROSPECT = "prospect"
UNKNOWN = "unknown"

_SPEAKER_ALIASES = {
    "rep": REP,
    "user": REP,
    "salesperson": REP,
    "prospect": PROSPECT,
    "ai": PROSPECT,
    "assistant": PROSPECT,
}

MONOLOGUE_MIN_TURNS = 3


@dataclass(frozen=True)
class Turn:
    """One immutable utterance in a conversation."""
    id: str
    speaker: str
    message: str
    timestamp: Optional[str] = None
    phase: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def is_rep(self) -> bool:
        return self.speaker == REP

    @property
    def is_prospect(self) -> bool:
        return self.speaker == PROSPECT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "speaker": self.speaker,
            "message": self.message,
            "timestamp": self.timestamp,
            "phase": self.phase,
            "metadata": dict(self.metadata),
        }


# =============================================================================
# NORMALIZATION
# =============================================================================

def normalize_speaker(raw: Any) -> str:
    if not isinstance(raw, str) or not raw.strip():
        return UNKNOWN
    return _SPEAKER_ALIASES.get(raw.strip().lower(), UNKNOWN)


def _first_present(entry: Mapping, keys: Sequence[str]) -> Any:
    for key in keys:
        value = entry.get(key)
        if value is not None:
            return value
    return None


def normalize_entry(entry: Any, index: int) -> Turn:
    """Map one loosely-shaped transcript entry to a Turn. Never raises."""
    if isinstance(entry, Turn):
        return entry
    if not isinstance(entry, Mapping):
        return Turn(id=f"t{index}", speaker=UNKNOWN, message="")

    message = _first_present(entry, ("message", "text", "content"))
    if not isinstance(message, str):
        message = "" if message is None else str(message)

    timestamp = entry.get("timestamp")
    turn_id = entry.get("id")

    return Turn(
        id=str(turn_id) if turn_id is not None else f"t{index}",
        speaker=normalize_speaker(_first_present(entry, ("speaker", "role"))),
        message=message,
        timestamp=str(timestamp) if timestamp is not None else None,
        phase=entry.get("phase") if isinstance(entry.get("phase"), str) else None,
    )


def normalize_transcript(entries: Optional[Iterable[Any]]) -> List[Turn]:
    if entries is None:
        return []
    return [normalize_entry(entry, i) for i, entry in enumerate(entries)]


def format_transcript(turns: Iterable[Turn]) -> str:
    """Speaker-tagged lines, one block per turn."""
    return "\n\n".join(f"{t.speaker.upper()}: {t.message}" for t in turns)


# =============================================================================
# STRUCTURE
# =============================================================================

def talk_segments(turns: Sequence[Turn]) -> List[Dict[str, Any]]:
    """Runs of consecutive turns by the same speaker."""
    segments: List[Dict[str, Any]] = []
    if not turns:
        return segments

    current = turns[0].speaker
    start = 0
    for i in range(1, len(turns)):
        if turns[i].speaker != current:
            segments.append({"speaker": current, "start_index": start, "end_index": i - 1, "turns": i - start})
            current = turns[i].speaker
            start = i
    segments.append({"speaker": current, "start_index": start, "end_index": len(turns) - 1, "turns": len(turns) - start})
    return segments


def find_monologues(turns: Sequence[Turn]) -> List[Dict[str, Any]]:
    monologues = []
    for seg in talk_segments(turns):
        if seg["turns"] >= MONOLOGUE_MIN_TURNS:
            content = " ".join(t.message for t in turns[seg["start_index"]:seg["end_index"] + 1])
            monologues.append({
                "speaker": seg["speaker"],
                "start_index": seg["start_index"],
                "turns": seg["turns"],
                "content": content,
            })
    return monologues


_PHASE_CLOSING = ("next step", "meeting", "follow up")
_PHASE_OBJECTION = ("expensive", "budget", "not interested", "already have")
_PHASE_VALUE = ("we help", "our solution", "benefit", "value")


def _detect_phase(turn: Turn, current: str) -> str:
    lower = turn.message.lower()
    if any(p in lower for p in _PHASE_CLOSING):
        return "closing"
    if turn.is_prospect and any(p in lower for p in _PHASE_OBJECTION):
        return "objection-handling"
    if turn.is_rep and any(p in lower for p in _PHASE_VALUE):
        return "value-prop"
    if turn.is_rep and "?" in lower and current == "opening":
        return "discovery"
    return current


def identify_phases(turns: Sequence[Turn]) -> List[Dict[str, Any]]:
    """Walk the transcript and split it into contiguous phase spans."""
    phases: List[Dict[str, Any]] = []
    current = "opening"
    start = 0
    for i, turn in enumerate(turns):
        new_phase = _detect_phase(turn, current)
        if new_phase != current:
            phases.append({"phase": current, "start_index": start, "end_index": i - 1})
            current = new_phase
            start = i
    if turns:
        phases.append({"phase": current, "start_index": start, "end_index": len(turns) - 1})
    return phases


def flow_smoothness(phases: Sequence[Mapping], monologues: Sequence[Mapping]) -> str:
    if len(phases) > 6:
        return "choppy"
    if len(monologues) > 3:
        return "disjointed"
    if any(m["turns"] > 5 for m in monologues):
        return "disjointed"
    return "smooth"


def analyze_call_flow(turns: Sequence[Turn]) -> Dict[str, Any]:
    phases = identify_phases(turns)
    monologues = find_monologues(turns)
    return {
        "phases": phases,
        "monologues": monologues,
        "smoothness": flow_smoothness(phases, monologues),
        "summary": summarize_transcript(turns),
    }


def summarize_transcript(turns: Sequence[Turn]) -> Dict[str, Any]:
    rep_turns = [t for t in turns if t.is_rep]
    total_chars = sum(len(t.message) for t in turns)
    return {
        "total_turns": len(turns),
        "rep_turns": len(rep_turns),
        "prospect_turns": sum(1 for t in turns if t.is_prospect),
        "questions": sum(1 for t in rep_turns if tp.has_question(t.message)),
        "objections": sum(1 for t in turns if t.is_prospect and tp.is_objection(t.message)),
        "value_props": sum(1 for t in rep_turns if tp.contains_any(t.message, tp.VALUE_KEYWORDS)),
        "avg_message_length": round(total_chars / len(turns)) if turns else 0,
        "key_topics": tp.extract_key_topics(t.message for t in turns),
    }
