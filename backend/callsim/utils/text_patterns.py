# backend/callsim/utils/text_patterns.py
"""
Shared text-pattern detectors.

Phrase tables plus small named detector functions used by both the
conversation engine (live classification of each utterance) and the
scoring engine (post-hoc transcript analysis). Every detector takes raw
text and returns a boolean, a category string or a count; none of them
hold state.
"""

import re
from typing import Dict, Iterable, List, Optional, Tuple


# =============================================================================
# PHRASE TABLES
# =============================================================================

VALUE_PROP_PHRASES = (
    "we help", "our solution", "we provide", "benefit", "value",
    "roi", "save time", "increase revenue", "reduce cost",
)

# Broader set used when counting value propositions in a finished transcript
VALUE_KEYWORDS = (
    "we help", "our solution", "benefit", "value", "save",
    "increase", "improve", "reduce", "streamline", "optimize",
    "roi", "return on investment", "efficiency", "productivity",
)

OBJECTION_HANDLING_PHRASES = (
    "i understand", "i hear you", "that makes sense", "other clients",
    "what we've found", "let me address", "good question",
)

CLOSING_PHRASES = (
    "next step", "meeting", "demo", "proposal", "trial",
    "how do we proceed", "what would you need",
)

CTA_PHRASES = (
    "next step", "meeting", "demo", "proposal", "trial",
    "schedule", "calendar", "follow up", "book",
)

POSITIVE_WORDS = ("great", "excellent", "perfect", "love", "excited")
NEGATIVE_WORDS = ("problem", "issue", "concern", "worried", "difficult")

TOPIC_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "budget": ("budget", "cost"),
    "timeline": ("timeline", "when"),
    "decision-process": ("decision", "approval"),
    "pain-points": ("challenge", "problem"),
}

KEY_TOPIC_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "budget": ("budget", "cost", "price", "investment"),
    "timeline": ("timeline", "when", "timeframe", "deadline"),
    "decision process": ("decision", "approval", "process"),
    "competition": ("competitor", "alternative", "current solution"),
    "implementation": ("implementation", "rollout", "deployment"),
    "integration": ("integrate", "integration", "connect"),
    "roi": ("roi", "return", "value", "benefit"),
    "pain points": ("challenge", "problem", "issue", "struggle"),
}

# Prospect objections, first match wins; detection and extraction both read this table
OBJECTION_PATTERNS = (
    re.compile(r"too expensive", re.IGNORECASE),
    re.compile(r"don't have (?:the |a )?budget", re.IGNORECASE),
    re.compile(r"not the right time", re.IGNORECASE),
    re.compile(r"already have(?: [^.!?]+)?", re.IGNORECASE),
    re.compile(r"need to think(?: about it)?", re.IGNORECASE),
    re.compile(r"talk to my [a-z]+", re.IGNORECASE),
    re.compile(r"not interested", re.IGNORECASE),
    re.compile(r"not a priority", re.IGNORECASE),
    re.compile(r"send me (?:some )?information", re.IGNORECASE),
)

CLOSED_QUESTION_STARTERS = (
    "do you", "are you", "is it", "can you",
    "will you", "have you", "did you", "would you",
    "does your", "is there", "has your",
)

HIGH_VALUE_QUESTIONS = (
    "what impact", "how does this affect", "what happens when",
    "tell me about", "help me understand", "what challenges",
    "what would success look like", "what are your priorities",
)

SPIN_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "situation": ("tell me about", "currently", "describe"),
    "problem": ("challenge", "problem", "issue"),
    "implication": ("impact", "affect", "consequence"),
    "need_payoff": ("ideal", "success", "benefit"),
}

BUSINESS_IMPACT_WORDS = ("revenue", "cost", "roi")

OBJECTION_TECHNIQUES: Dict[str, Tuple[str, ...]] = {
    "acknowledge": ("i understand", "i hear you", "that makes sense", "i appreciate"),
    "clarify": ("can you tell me more", "help me understand", "what specifically"),
    "respond": ("what we've found", "other clients", "the way we address"),
    "confirm": ("does that address", "how does that sound", "would that help"),
}

EVIDENCE_MARKERS = ("client", "%", "study")

FILLER_WORDS = (
    "um", "uh", "like", "you know", "basically", "actually",
    "literally", "sort of", "kind of", "i mean",
)

CERTAINTY_INDICATORS = (
    "i recommend", "the best approach", "based on my experience",
    "i'm confident", "this will", "you'll see", "i guarantee",
)

HEDGING_INDICATORS = (
    "i think maybe", "it might", "i'm not sure", "possibly",
    "i guess", "sort of", "kind of", "perhaps",
)

COMMITMENT_PHRASES = (
    "yes", "sounds good", "let's do", "i'm interested",
    "makes sense", "i agree", "that works",
)

PAIN_POINT_WORDS = ("challenge", "problem", "struggle", "difficult", "bottleneck", "frustrat", "pain")

GOAL_WORDS = ("our goal", "we want to", "looking to", "objective", "we're trying to", "we need to")

TIMELINE_CUES = (
    "monday", "tuesday", "wednesday", "thursday", "friday",
    "tomorrow", "next week", "this week", "o'clock",
)
PARTICIPANT_CUES = ("team", "cto", "cfo", "ceo", "manager", "invite", "bring", "include", "stakeholder")
AGENDA_CUES = ("agenda", "walk through", "review", "cover", "show you", "discuss", "go over")

# Buzzwords and casual openers for the hangup rules
BUZZWORDS = (
    "synergy", "synergies", "paradigm", "best-in-class", "best in class",
    "cutting-edge", "cutting edge", "revolutionary", "game-changer", "game changer",
    "disruptive", "next-generation", "next generation", "world-class", "world class",
    "seamless", "leverage", "holistic", "robust", "innovative", "turnkey",
)

SMALL_TALK_PHRASES = (
    "how are you", "how's it going", "how is it going", "how's your day",
    "how is your day", "hope you're well", "hope you are well", "hope you're doing well",
    "how was your weekend", "nice weather", "happy friday",
)

CASUAL_OPENERS = (
    "hey", "hiya", "yo", "what's up", "whats up", "sup", "howdy",
)

ROI_LANGUAGE = (
    "roi", "return on investment", "payback", "save", "cost savings",
    "margin", "revenue", "%", "$",
)

SENSITIVE_DISCOVERY_TOPICS = ("budget", "decision-process")


# =============================================================================
# COMPILED PATTERNS
# =============================================================================

_FILLER_REGEXES = {
    filler: re.compile(r"\b" + re.escape(filler) + r"\b", re.IGNORECASE)
    for filler in FILLER_WORDS
}

_WORD_REGEX = re.compile(r"[a-z0-9'\-]+")

BUDGET_PATTERN = re.compile(r"\$[\d,]+(?:\.\d+)?[kKmM]?")
TIMELINE_PATTERNS = (
    re.compile(r"next (?:quarter|month|year)", re.IGNORECASE),
    re.compile(r"by (?:Q\d|end of [a-z]+)", re.IGNORECASE),
)
COMPANY_SIZE_PATTERN = re.compile(r"(\d[\d,]*)\s*(?:employees|people|staff)", re.IGNORECASE)
DECISION_PROCESS_PATTERN = re.compile(
    r"(?:approval|sign[- ]off)\s+(?:from|by)\s+(?:the\s+|my\s+|our\s+)?[a-z][a-z ]{1,30}",
    re.IGNORECASE,
)
_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")
_DIGIT = re.compile(r"\d")


# =============================================================================
# HELPERS
# =============================================================================

def _lower(text: Optional[str]) -> str:
    return (text or "").lower()


def contains_any(text: Optional[str], phrases: Iterable[str]) -> bool:
    lower = _lower(text)
    return any(phrase in lower for phrase in phrases)


def count_matching(text: Optional[str], phrases: Iterable[str]) -> int:
    lower = _lower(text)
    return sum(1 for phrase in phrases if phrase in lower)


def matching_phrases(text: Optional[str], phrases: Iterable[str]) -> List[str]:
    lower = _lower(text)
    return [phrase for phrase in phrases if phrase in lower]


def word_count(text: Optional[str]) -> int:
    return len((text or "").split())


# =============================================================================
# REP UTTERANCE DETECTORS
# =============================================================================

def has_question(text: Optional[str]) -> bool:
    return "?" in (text or "")


def question_type(text: Optional[str]) -> str:
    """
    Coarse question sub-type of a single utterance.

    Returns one of problem, implication, need-payoff, situation, general or none.
    """
    lower = _lower(text)
    if "what" in lower and "challenge" in lower:
        return "problem"
    if "how" in lower and "impact" in lower:
        return "implication"
    if "what" in lower and "ideal" in lower:
        return "need-payoff"
    if "tell me about" in lower:
        return "situation"
    if "?" in lower:
        return "general"
    return "none"


def has_value_proposition(text: Optional[str]) -> bool:
    return contains_any(text, VALUE_PROP_PHRASES)


def has_objection_handling(text: Optional[str]) -> bool:
    return contains_any(text, OBJECTION_HANDLING_PHRASES)


def has_closing_attempt(text: Optional[str]) -> bool:
    return contains_any(text, CLOSING_PHRASES)


def message_sentiment(text: Optional[str]) -> str:
    """friendly / skeptical / neutral from positive vs negative word counts."""
    positive = count_matching(text, POSITIVE_WORDS)
    negative = count_matching(text, NEGATIVE_WORDS)
    if positive > negative:
        return "friendly"
    if negative > positive:
        return "skeptical"
    return "neutral"


def extract_topics(text: Optional[str]) -> List[str]:
    lower = _lower(text)
    return [topic for topic, words in TOPIC_KEYWORDS.items() if any(w in lower for w in words)]


def extract_key_topics(texts: Iterable[str]) -> List[str]:
    found: List[str] = []
    for text in texts:
        lower = _lower(text)
        for topic, words in KEY_TOPIC_KEYWORDS.items():
            if topic not in found and any(w in lower for w in words):
                found.append(topic)
    return found


# =============================================================================
# HANGUP SIGNALS
# =============================================================================

def buzzwords_in(text: Optional[str]) -> List[str]:
    """Distinct buzzwords present, with hyphenated/spaced spellings folded together."""
    lower = _lower(text)
    seen: List[str] = []
    for word in BUZZWORDS:
        if re.search(r"\b" + re.escape(word) + r"\b", lower):
            canonical = word.replace("-", " ")
            if canonical.endswith("ies"):
                canonical = canonical[:-3] + "y"
            if canonical not in seen:
                seen.append(canonical)
    return seen


def has_small_talk(text: Optional[str]) -> bool:
    return contains_any(text, SMALL_TALK_PHRASES)


def has_casual_opener(text: Optional[str]) -> bool:
    lower = _lower(text).strip()
    words = _WORD_REGEX.findall(lower)
    if not words:
        return False
    if words[0] in CASUAL_OPENERS:
        return True
    return lower.startswith(("what's up", "whats up")) or has_small_talk(lower)


def has_roi_language(text: Optional[str]) -> bool:
    return bool(_DIGIT.search(text or "")) or contains_any(text, ROI_LANGUAGE)


# =============================================================================
# PROSPECT REPLY DETECTORS
# =============================================================================

def reply_sentiment(text: Optional[str]) -> str:
    lower = _lower(text)
    if "not interested" in lower or "don't need" in lower:
        return "hostile"
    if "interesting" in lower or "tell me more" in lower:
        return "friendly"
    if "not sure" in lower or "maybe" in lower:
        return "skeptical"
    return "neutral"


def extract_objection(text: Optional[str]) -> Optional[str]:
    for pattern in OBJECTION_PATTERNS:
        match = pattern.search(text or "")
        if match:
            return match.group(0).strip()
    return None


def is_objection(text: Optional[str]) -> bool:
    return extract_objection(text) is not None


def categorize_objection(text: Optional[str]) -> str:
    lower = _lower(text)
    if "expensive" in lower or "budget" in lower or "cost" in lower:
        return "budget"
    if "time" in lower or "busy" in lower:
        return "timing"
    if "already have" in lower or "current" in lower:
        return "status-quo"
    if "authority" in lower or "decision" in lower or "my boss" in lower:
        return "authority"
    return "general"


def extract_revealed_information(text: Optional[str]) -> Dict[str, str]:
    """
    Pull budget, timeline, company size and decision-process facts out of a reply.

    When several timeline patterns match, the last one listed wins.
    """
    message = text or ""
    info: Dict[str, str] = {}

    budget = BUDGET_PATTERN.search(message)
    if budget:
        info["budget"] = budget.group(0)

    for pattern in TIMELINE_PATTERNS:
        match = pattern.search(message)
        if match:
            info["timeline"] = match.group(0)

    size = COMPANY_SIZE_PATTERN.search(message)
    if size:
        info["company_size"] = size.group(0)

    decision = DECISION_PROCESS_PATTERN.search(message)
    if decision:
        info["decision_process"] = decision.group(0).strip()

    return info


def emotional_tone(text: Optional[str]) -> str:
    message = text or ""
    if "!" in message:
        return "enthusiastic"
    if "..." in message:
        return "hesitant"
    if len(message) < 20:
        return "curt"
    if "actually" in message or "honestly" in message:
        return "candid"
    return "professional"


def extract_pain_points(text: Optional[str]) -> List[str]:
    points = []
    for sentence in _SENTENCE_SPLIT.split((text or "").strip()):
        if sentence and contains_any(sentence, PAIN_POINT_WORDS):
            points.append(sentence.strip())
    return points


def extract_goals(text: Optional[str]) -> List[str]:
    goals = []
    for sentence in _SENTENCE_SPLIT.split((text or "").strip()):
        if sentence and contains_any(sentence, GOAL_WORDS):
            goals.append(sentence.strip())
    return goals


def has_commitment(text: Optional[str]) -> bool:
    lower = _lower(text)
    if re.search(r"\byes\b", lower):
        return True
    return any(phrase in lower for phrase in COMMITMENT_PHRASES if phrase != "yes")


def extract_commitments(text: Optional[str]) -> List[str]:
    lower = _lower(text)
    found = []
    for phrase in COMMITMENT_PHRASES:
        if phrase == "yes":
            if re.search(r"\byes\b", lower):
                found.append(phrase)
        elif phrase in lower:
            found.append(phrase)
    return found


# =============================================================================
# SCORING DETECTORS
# =============================================================================

def is_open_question(text: Optional[str]) -> bool:
    lower = _lower(text).strip()
    return not lower.startswith(CLOSED_QUESTION_STARTERS)


def spin_category(text: Optional[str]) -> str:
    """SPIN bucket for one question: situation, problem, implication, need_payoff or other."""
    lower = _lower(text)
    for category, words in SPIN_KEYWORDS.items():
        if any(word in lower for word in words):
            return category
    return "other"


def is_strong_question(text: Optional[str]) -> bool:
    return contains_any(text, HIGH_VALUE_QUESTIONS)


def has_business_impact(text: Optional[str]) -> bool:
    return contains_any(text, BUSINESS_IMPACT_WORDS)


def objection_techniques(text: Optional[str]) -> List[str]:
    lower = _lower(text)
    return [name for name, phrases in OBJECTION_TECHNIQUES.items() if any(p in lower for p in phrases)]


def objection_response_features(text: Optional[str]) -> Dict[str, bool]:
    """The four feature classes an objection response is graded on."""
    lower = _lower(text)
    return {
        "acknowledge": any(p in lower for p in OBJECTION_TECHNIQUES["acknowledge"]),
        "value": "value" in lower or "benefit" in lower,
        "evidence": any(marker in lower for marker in EVIDENCE_MARKERS),
        "question": "?" in lower,
    }


def count_filler_words(text: Optional[str]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for filler, regex in _FILLER_REGEXES.items():
        hits = len(regex.findall(text or ""))
        if hits:
            counts[filler] = hits
    return counts


def count_certainty(text: Optional[str]) -> int:
    return count_matching(text, CERTAINTY_INDICATORS)


def count_hedging(text: Optional[str]) -> int:
    return count_matching(text, HEDGING_INDICATORS)


def has_cta(text: Optional[str]) -> bool:
    return contains_any(text, CTA_PHRASES)


def cta_specificity(text: Optional[str]) -> str:
    """very-specific / somewhat-specific / vague by timeline, participant and agenda cues."""
    lower = _lower(text)
    words = set(_WORD_REGEX.findall(lower))

    def _has(cues):
        return any((cue in words) if " " not in cue and "'" not in cue else (cue in lower) for cue in cues)

    has_time = _has(TIMELINE_CUES) or bool(re.search(r"\b\d{1,2}(?::\d{2})?\s*(?:am|pm)\b", lower))
    hits = sum([has_time, _has(PARTICIPANT_CUES), _has(AGENDA_CUES)])
    if hits >= 2:
        return "very-specific"
    if hits == 1:
        return "somewhat-specific"
    return "vague"
