# backend/tests/test_text_patterns.py
"""
Detector contracts: phrase in, boolean / category / count out.
"""
import pytest

from callsim.utils import text_patterns as tp


class TestRepUtteranceDetectors:
    @pytest.mark.parametrize("text,expected", [
        ("What challenges are you facing with reconciliation?", "problem"),
        ("How does that impact your close?", "implication"),
        ("What would the ideal setup look like?", "need-payoff"),
        ("Tell me about your team.", "situation"),
        ("Any thoughts?", "general"),
        ("Thanks for taking the call.", "none"),
    ])
    def test_question_type(self, text, expected):
        assert tp.question_type(text) == expected

    @pytest.mark.parametrize("text,expected", [
        ("This is great, I love the direction", "friendly"),
        ("We have a problem and a real concern", "skeptical"),
        ("Let's talk about the rollout", "neutral"),
    ])
    def test_message_sentiment(self, text, expected):
        assert tp.message_sentiment(text) == expected

    def test_extract_topics(self):
        assert tp.extract_topics("What's your budget and timeline?") == ["budget", "timeline"]
        assert tp.extract_topics("Who signs off on the decision?") == ["decision-process"]
        assert tp.extract_topics("") == []

    def test_value_prop_and_closing(self):
        assert tp.has_value_proposition("We help finance teams reduce cost")
        assert not tp.has_value_proposition("Thanks for your time")
        assert tp.has_closing_attempt("Can we set up a demo?")
        assert tp.has_objection_handling("I hear you, that's fair")

    @pytest.mark.parametrize("text,expected", [
        ("What's your timeline?", False),
        ("When are you hoping to go live?", False),
        ("How do we proceed from here?", True),
        ("Should we plan the next step?", True),
    ])
    def test_closing_attempt(self, text, expected):
        assert tp.has_closing_attempt(text) is expected

    def test_none_input_is_safe(self):
        assert tp.has_question(None) is False
        assert tp.word_count(None) == 0
        assert tp.extract_topics(None) == []


class TestHangupSignals:
    def test_buzzwords_fold_spellings(self):
        found = tp.buzzwords_in("Our cutting-edge, best in class platform unlocks synergies")
        assert set(found) == {"cutting edge", "best in class", "synergy"}

    def test_buzzwords_whole_words_only(self):
        assert tp.buzzwords_in("We leverage data") == ["leverage"]
        assert tp.buzzwords_in("The robustness of the audit") == []

    @pytest.mark.parametrize("text,expected", [
        ("Hey there, quick question", True),
        ("yo what's going on", True),
        ("How are you today?", True),
        ("Good morning, this is Dana from LedgerFlow", False),
        ("", False),
    ])
    def test_casual_opener(self, text, expected):
        assert tp.has_casual_opener(text) is expected

    @pytest.mark.parametrize("text,expected", [
        ("We cut close time by 40%", True),
        ("Teams usually see payback inside a year", True),
        ("I'd love to tell you about our platform", False),
    ])
    def test_roi_language(self, text, expected):
        assert tp.has_roi_language(text) is expected


class TestProspectReplyDetectors:
    @pytest.mark.parametrize("text,expected", [
        ("We're not interested", "hostile"),
        ("That's interesting", "friendly"),
        ("I'm not sure about that", "skeptical"),
        ("Okay.", "neutral"),
    ])
    def test_reply_sentiment(self, text, expected):
        assert tp.reply_sentiment(text) == expected

    def test_extract_objection(self):
        assert tp.extract_objection("Honestly it's too expensive for us") == "too expensive"
        assert tp.extract_objection("We already have a vendor for that.") == "already have a vendor for that"
        assert tp.extract_objection("Sounds reasonable") is None

    @pytest.mark.parametrize("text,expected", [
        ("Honestly, I need to think.", "need to think"),
        ("I'd have to talk to my CFO first.", "talk to my CFO"),
        ("We already have.", "already have"),
        ("We don't have budget this year.", "don't have budget"),
        ("Can you send me some information?", "send me some information"),
    ])
    def test_extract_objection_short_forms(self, text, expected):
        assert tp.extract_objection(text) == expected

    @pytest.mark.parametrize("text", [
        "Honestly, I need to think.",
        "I need to think about it.",
        "I'd have to talk to my CFO first.",
        "Let me talk to my team.",
        "It's too expensive",
        "We don't have the budget.",
        "We already have a vendor for that.",
        "Not interested, thanks.",
        "It's not a priority right now.",
        "Just send me information.",
        "Reconciliation takes us ten days.",
        "Sounds reasonable",
        "",
        None,
    ])
    def test_detection_agrees_with_extraction(self, text):
        assert tp.is_objection(text) is (tp.extract_objection(text) is not None)

    @pytest.mark.parametrize("text,expected", [
        ("It's too expensive", "budget"),
        ("It's not the right time", "timing"),
        ("We already have a tool", "status-quo"),
        ("I'd need my boss to approve", "authority"),
        ("Not convinced", "general"),
    ])
    def test_categorize_objection(self, text, expected):
        assert tp.categorize_objection(text) == expected

    def test_extract_revealed_information(self):
        info = tp.extract_revealed_information("Budget is $50k and we want it live next quarter.")
        assert info == {"budget": "$50k", "timeline": "next quarter"}

        info = tp.extract_revealed_information("We have 250 employees and it needs sign-off from the CFO.")
        assert info["company_size"] == "250 employees"
        assert info["decision_process"] == "sign-off from the CFO"

    @pytest.mark.parametrize("text,expected", [
        ("Wow, that's a lot!", "enthusiastic"),
        ("Well... maybe", "hesitant"),
        ("Fine.", "curt"),
        ("We have honestly been evaluating options", "candid"),
        ("We are evaluating several options this quarter.", "professional"),
    ])
    def test_emotional_tone(self, text, expected):
        assert tp.emotional_tone(text) == expected

    def test_pain_points_and_goals(self):
        text = "Reconciliation is a real challenge. Our goal is a five day close."
        assert tp.extract_pain_points(text) == ["Reconciliation is a real challenge."]
        assert tp.extract_goals(text) == ["Our goal is a five day close."]

    def test_commitment_matches_whole_word_yes(self):
        assert tp.has_commitment("Yes, let's do it")
        assert not tp.has_commitment("Yesterday was busy")
        assert tp.extract_commitments("Yes, that works") == ["yes", "that works"]


class TestScoringDetectors:
    @pytest.mark.parametrize("text,expected", [
        ("Do you use spreadsheets today?", False),
        ("Are you the owner of this process?", False),
        ("What does your process look like?", True),
        ("How do you handle exceptions?", True),
    ])
    def test_is_open_question(self, text, expected):
        assert tp.is_open_question(text) is expected

    @pytest.mark.parametrize("text,expected", [
        ("Tell me about your current process", "situation"),
        ("What challenges come up at month end?", "problem"),
        ("How does that affect the team?", "implication"),
        ("What would success look like?", "need_payoff"),
        ("Where are you based?", "other"),
    ])
    def test_spin_category(self, text, expected):
        assert tp.spin_category(text) == expected

    def test_objection_techniques(self):
        text = "I understand. Can you tell me more? Other clients saw the same. Does that address it?"
        assert tp.objection_techniques(text) == ["acknowledge", "clarify", "respond", "confirm"]
        assert tp.objection_techniques("Our price is fixed.") == []

    def test_objection_response_features(self):
        features = tp.objection_response_features("I hear you. Our clients see real value here, would that help?")
        assert features == {"acknowledge": True, "value": True, "evidence": True, "question": True}

    def test_count_filler_words(self):
        counts = tp.count_filler_words("Um, I mean, it's like basically done")
        assert counts == {"um": 1, "like": 1, "basically": 1, "i mean": 1}
        assert tp.count_filler_words("Numbers are up") == {}

    def test_certainty_and_hedging(self):
        assert tp.count_certainty("I recommend we start small. I'm confident this will work.") == 3
        assert tp.count_hedging("I guess it might, perhaps") == 3

    @pytest.mark.parametrize("text,expected", [
        ("Can we schedule a demo Tuesday at 2pm with your CFO to review the rollout?", "very-specific"),
        ("Let's set up a demo next week.", "somewhat-specific"),
        ("Let's stay in touch.", "vague"),
    ])
    def test_cta_specificity(self, text, expected):
        assert tp.cta_specificity(text) == expected
