# backend/callsim/agents/catalog.py
"""
Static lookup tables for the simulation and scoring engine.

Everything here is loaded once at import and never mutated. The engine
receives an EngineTables bundle rather than reaching for these module
globals, so tests can swap in substituted tables.

Contents:
- Persona definitions per role level (junior .. c-level)
- Call type configurations (outbound, inbound, objection drill, elevator pitch)
- Difficulty modifiers (1-5)
- Canned prospect lines per role level (used when generation fails)
- Personality trait modifiers
- Scoring weights and ideal talk-ratio bands per call type
- Model parameters for the generative collaborators
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Tuple


class ScenarioConfigError(ValueError):
    """Raised when a persona level, call type, difficulty or archetype is unknown."""
    pass


class PersonaLevel(Enum):
    """Ordered seniority tiers of the simulated prospect"""
    JUNIOR = "junior"
    MANAGER = "manager"
    DIRECTOR = "director"
    VP = "vp"
    C_LEVEL = "c-level"


class CallType(Enum):
    """Scenario framing for a practice call"""
    DISCOVERY_OUTBOUND = "discovery-outbound"
    DISCOVERY_INBOUND = "discovery-inbound"
    OBJECTION_HANDLING = "objection-handling"
    ELEVATOR_PITCH = "elevator-pitch"


class ConversationPhase(Enum):
    """Call phases tracked by the conversation engine"""
    OPENING = "opening"
    DISCOVERY = "discovery"
    VALUE_PROP = "value-prop"
    OBJECTION_HANDLING = "objection-handling"
    CLOSING = "closing"


class PersonaArchetype(Enum):
    """Behavioral archetype that selects persona-specific hangup rules"""
    STANDARD = "standard"
    HOSTILE_CTO = "hostile-cto"
    SKEPTICAL_CFO = "skeptical-cfo"
    TIME_PRESSED_EXECUTIVE = "time-pressed-executive"


MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5
HANGUP_DIFFICULTY = MAX_DIFFICULTY

METRIC_KEYS: Tuple[str, ...] = ("talk_ratio", "discovery", "objection_handling", "confidence", "cta")

METRIC_NAMES: Dict[str, str] = {
    "talk_ratio": "Talk Ratio",
    "discovery": "Discovery Quality",
    "objection_handling": "Objection Handling",
    "confidence": "Confidence & Presence",
    "cta": "Call to Action",
}


# =============================================================================
# RECORD TYPES
# =============================================================================

@dataclass(frozen=True)
class PersonaDefinition:
    """Static per-level persona data"""
    level: PersonaLevel
    titles: Tuple[str, ...]
    responsibilities: Tuple[str, ...]
    priorities: Tuple[str, ...]
    communication_style: str
    decision_making: str
    common_objections: Tuple[str, ...]
    information_sharing: str
    budget_authority: str
    typical_concerns: Tuple[str, ...]


@dataclass(frozen=True)
class CallTypeConfig:
    call_type: CallType
    context: str
    prospect_behavior: str
    response_pattern: str
    success_criteria: Tuple[str, ...]
    objection_types: Tuple[str, ...]
    information_sharing: str
    expected_duration_minutes: int


@dataclass(frozen=True)
class DifficultyModifier:
    level: int
    name: str
    description: str
    cooperation: float
    information_sharing: float
    objection_frequency: float
    trust_required: float
    response_delay_ms: int
    behavior: str
    sharing_style: str
    objection_style: str


@dataclass(frozen=True)
class TalkRatioBand:
    minimum: float
    maximum: float

    @property
    def midpoint(self) -> float:
        return (self.minimum + self.maximum) / 2


@dataclass(frozen=True)
class ModelParameters:
    temperature: float
    max_tokens: int
    presence_penalty: float = 0.0
    frequency_penalty: float = 0.0


# =============================================================================
# PERSONA DEFINITIONS
# =============================================================================

PERSONA_DEFINITIONS: Dict[PersonaLevel, PersonaDefinition] = {
    PersonaLevel.JUNIOR: PersonaDefinition(
        level=PersonaLevel.JUNIOR,
        titles=(
            "Specialist", "Coordinator", "Analyst", "Associate", "Assistant",
            "Representative", "Executive", "Administrator",
        ),
        responsibilities=(
            "Execute day-to-day tasks and follow established processes",
            "Use company tools and systems for daily operations",
            "Report progress and issues to direct manager",
            "Meet individual performance metrics and deadlines",
            "Maintain quality standards in work output",
            "Collaborate with team members on projects",
            "Document processes and maintain records",
            "Respond to internal/external inquiries",
        ),
        priorities=(
            "Clear instructions and expectations from management",
            "Tools that are easy to use and reliable",
            "Achieving individual performance metrics",
            "Skill development and career progression",
            "Avoiding workflow bottlenecks",
            "Recognition for good work",
            "Work-life balance",
            "Job security",
        ),
        communication_style=(
            "Direct, task-focused, asks practical questions about implementation and daily use. "
            "May defer to manager for strategic decisions."
        ),
        decision_making=(
            "Limited authority, needs manager approval for most decisions. "
            "Can make recommendations but not final calls."
        ),
        common_objections=(
            "I need to check with my manager first",
            "We don't have budget for this",
            "I'm not sure how this fits our current process",
            "My boss makes these decisions",
            "We're already using something else",
            "I don't have time to learn a new system",
            "How much work will this create for me?",
            "Will this make my job harder?",
        ),
        information_sharing=(
            "Open about day-to-day challenges and pain points, less aware of strategic initiatives. "
            "Shares tactical details freely."
        ),
        budget_authority="No direct budget authority. May influence small purchases through recommendations.",
        typical_concerns=(
            "Will this make my job easier or harder?",
            "How long will it take to learn?",
            "Will I still have a job if we implement this?",
            "What if something goes wrong?",
        ),
    ),
    PersonaLevel.MANAGER: PersonaDefinition(
        level=PersonaLevel.MANAGER,
        titles=(
            "Manager", "Senior Manager", "Team Lead", "Supervisor",
            "Department Head", "Operations Manager", "Project Manager",
        ),
        responsibilities=(
            "Oversee team operations and performance",
            "Translate strategy into actionable plans",
            "Monitor KPIs and team metrics",
            "Provide feedback and coaching to team members",
            "Ensure processes are followed and optimized",
            "Handle escalations and team issues",
            "Report to directors on team performance",
            "Manage departmental budget allocation",
            "Drive process improvements",
            "Coordinate cross-functional initiatives",
        ),
        priorities=(
            "Meeting team KPIs and deadlines",
            "Maintaining team productivity and morale",
            "Streamlining workflows and processes",
            "Supporting staff development and growth",
            "Clear communication between leadership and team",
            "Resource optimization",
            "Risk mitigation",
            "Stakeholder satisfaction",
        ),
        communication_style=(
            "Balanced between strategic and tactical, asks about team impact and implementation logistics. "
            "Focuses on ROI and efficiency."
        ),
        decision_making=(
            "Can make departmental decisions within budget limits. "
            "Needs approval for major investments or strategic changes."
        ),
        common_objections=(
            "How will this affect my team's productivity?",
            "We're already implementing another solution",
            "I need to see ROI projections",
            "What's the implementation timeline?",
            "How will this integrate with our current systems?",
            "My team is already overwhelmed",
            "I need to understand the total cost of ownership",
            "What kind of support will you provide?",
        ),
        information_sharing=(
            "Knows team challenges and departmental goals well. Some visibility into company strategy. "
            "Protective of team resources."
        ),
        budget_authority=(
            "Departmental budget authority, typically $10K-$100K depending on company size. "
            "Can approve within limits."
        ),
        typical_concerns=(
            "Impact on team workload and morale",
            "Integration with existing processes",
            "Training requirements and timeline",
            "Ongoing support and maintenance",
            "Measurable benefits vs. costs",
        ),
    ),
    PersonaLevel.DIRECTOR: PersonaDefinition(
        level=PersonaLevel.DIRECTOR,
        titles=(
            "Director", "Senior Director", "Vice President", "AVP",
            "Head of Department", "Regional Director", "Division Director",
        ),
        responsibilities=(
            "Develop departmental strategies aligned with company goals",
            "Allocate budgets and resources across teams",
            "Approve key initiatives and investments",
            "Drive cross-functional collaboration",
            "Review performance data and analytics",
            "Build stakeholder relationships",
            "Represent department in executive meetings",
            "Ensure compliance and risk management",
            "Develop future leaders",
            "Drive innovation and transformation",
        ),
        priorities=(
            "Driving efficiency and profitability",
            "Achieving long-term strategic goals",
            "Maintaining competitive advantage",
            "Reliable data for decision-making",
            "Building high-performing teams",
            "Managing stakeholder expectations",
            "Regulatory compliance",
            "Market positioning",
        ),
        communication_style=(
            "Strategic, data-driven, asks about business impact and competitive advantage. "
            "Thinks in quarters and years, not days."
        ),
        decision_making=(
            "Significant budget authority, can approve major departmental initiatives. "
            "Influences company-wide decisions."
        ),
        common_objections=(
            "How does this align with our strategic roadmap?",
            "What's the competitive differentiation?",
            "I need to see detailed ROI analysis",
            "How does this scale across the organization?",
            "What are the risks and mitigation strategies?",
            "We have other priorities this quarter",
            "I need to see successful case studies",
            "How does this impact our other initiatives?",
        ),
        information_sharing=(
            "Deep knowledge of departmental strategy and good visibility into company direction. "
            "Guards competitive information."
        ),
        budget_authority=(
            "Significant budget authority, typically $100K-$1M+. "
            "Can approve major investments with business case."
        ),
        typical_concerns=(
            "Strategic alignment with company goals",
            "Competitive positioning",
            "Risk vs. reward analysis",
            "Resource allocation across initiatives",
            "Long-term sustainability",
        ),
    ),
    PersonaLevel.VP: PersonaDefinition(
        level=PersonaLevel.VP,
        titles=(
            "Vice President", "Executive Vice President", "Senior Vice President",
            "Chief Officer (non-C-suite)", "President of Division", "General Manager",
        ),
        responsibilities=(
            "Own strategic direction for entire business unit",
            "Set high-level KPIs and success metrics",
            "Approve major investments and partnerships",
            "Represent division in executive discussions",
            "Ensure function contributes to company success",
            "Develop leadership talent pipeline",
            "Drive cultural transformation",
            "Manage P&L responsibility",
            "Interface with board on functional matters",
            "Lead market expansion initiatives",
        ),
        priorities=(
            "Meeting revenue/growth targets",
            "Aligning strategy with company vision",
            "Managing risks and compliance",
            "Driving innovation and market leadership",
            "Effective allocation of major budgets",
            "Talent retention and development",
            "Shareholder value creation",
            "Market share growth",
        ),
        communication_style=(
            "Executive-level, focused on business outcomes and strategic alignment. "
            "Speaks in terms of market impact and shareholder value."
        ),
        decision_making=(
            "Major budget authority, can approve significant investments and strategic partnerships. "
            "Direct input to C-suite."
        ),
        common_objections=(
            "How does this impact our market position?",
            "What's the strategic value to the organization?",
            "I need board-level justification for this investment",
            "How does this fit our 3-5 year plan?",
            "What's the opportunity cost?",
            "Show me the competitive analysis",
            "How does this affect our stock price?",
            "What are the regulatory implications?",
        ),
        information_sharing=(
            "Comprehensive understanding of business unit performance and strategy. "
            "Direct input into company direction."
        ),
        budget_authority=(
            "Major budget authority, $1M-$10M+. "
            "Can approve transformational investments with board alignment."
        ),
        typical_concerns=(
            "Market disruption and competitive threats",
            "Shareholder and board expectations",
            "Regulatory and compliance risks",
            "Talent acquisition and retention",
            "Technology transformation",
        ),
    ),
    PersonaLevel.C_LEVEL: PersonaDefinition(
        level=PersonaLevel.C_LEVEL,
        titles=(
            "Chief Executive Officer", "Chief Operating Officer", "Chief Financial Officer",
            "Chief Technology Officer", "Chief Information Officer", "Chief Marketing Officer",
            "Chief Revenue Officer", "Chief People Officer", "President",
        ),
        responsibilities=(
            "Define company mission, vision, and strategy",
            "Make final decisions on major investments",
            "Oversee all divisions and functions",
            "Represent company to shareholders and investors",
            "Ensure long-term sustainability and growth",
            "Foster strategic culture and values",
            "Manage board relationships",
            "Drive merger and acquisition strategy",
            "Set company-wide policies",
            "Navigate market dynamics",
        ),
        priorities=(
            "Business growth and market share expansion",
            "Maximizing shareholder value",
            "Long-term financial health",
            "Identifying transformational opportunities",
            "Mitigating enterprise risks",
            "Building sustainable competitive advantage",
            "Attracting and retaining top talent",
            "Maintaining company reputation",
        ),
        communication_style=(
            "Visionary, focused on market dynamics and shareholder value. "
            "Thinks in terms of industry transformation and legacy."
        ),
        decision_making=(
            "Ultimate authority on strategic decisions and major investments. "
            "Reports to board of directors."
        ),
        common_objections=(
            "How does this transform our business model?",
            "What's the impact on shareholder value?",
            "How does this position us against market disruption?",
            "Show me the 5-year financial model",
            "What's the exit strategy?",
            "How does this affect our valuation?",
            "What are the acquisition opportunities?",
            "How does this align with our investor commitments?",
        ),
        information_sharing=(
            "Highest level strategic context, market intelligence, board and investor perspectives. "
            "Very selective with information."
        ),
        budget_authority=(
            "Ultimate budget authority. Can approve any investment with board approval. "
            "Thinks in terms of company valuation."
        ),
        typical_concerns=(
            "Market disruption and industry transformation",
            "Investor and analyst expectations",
            "Board governance and relationships",
            "Company legacy and long-term impact",
            "Global economic factors",
        ),
    ),
}


BUDGET_RANGES: Dict[PersonaLevel, Dict[str, str]] = {
    PersonaLevel.JUNIOR: {"small": "$0", "medium": "$0", "large": "$0", "enterprise": "$0"},
    PersonaLevel.MANAGER: {
        "small": "$5K-$25K", "medium": "$10K-$50K", "large": "$25K-$100K", "enterprise": "$50K-$250K",
    },
    PersonaLevel.DIRECTOR: {
        "small": "$25K-$100K", "medium": "$50K-$250K", "large": "$100K-$500K", "enterprise": "$250K-$1M",
    },
    PersonaLevel.VP: {
        "small": "$100K-$500K", "medium": "$250K-$1M", "large": "$500K-$5M", "enterprise": "$1M-$10M",
    },
    PersonaLevel.C_LEVEL: {"small": "$500K+", "medium": "$1M+", "large": "$5M+", "enterprise": "$10M+"},
}


# =============================================================================
# CALL TYPE CONFIGURATIONS
# =============================================================================

CALL_TYPE_CONFIGS: Dict[CallType, CallTypeConfig] = {
    CallType.DISCOVERY_OUTBOUND: CallTypeConfig(
        call_type=CallType.DISCOVERY_OUTBOUND,
        context="The sales rep cold-called you. You were not expecting this call and have no prior relationship.",
        prospect_behavior=(
            "Initially guarded and skeptical. Need to be convinced there's value in continuing the conversation. "
            "Will gradually open up if the rep demonstrates relevance and value."
        ),
        response_pattern=(
            "Start with mild resistance and skepticism. Require the rep to lead with insights rather than "
            "generic questions. Share information gradually as trust builds."
        ),
        success_criteria=(
            "Rep identifies a business trigger or challenge",
            "Rep uncovers current situation and pain points",
            "Rep discovers the impact of problems",
            "Rep understands ideal future state",
            "Rep ties product value to specific needs",
            "Rep secures a follow-up meeting with clear agenda",
        ),
        objection_types=(
            "We're not looking for anything right now",
            "We're happy with our current solution",
            "This isn't a priority for us",
            "I don't have time for this",
            "You should talk to someone else",
            "Send me some information first",
        ),
        information_sharing=(
            "Very selective initially. Only share surface-level information until rep proves value. "
            "Open up gradually if rep asks good questions."
        ),
        expected_duration_minutes=15,
    ),
    CallType.DISCOVERY_INBOUND: CallTypeConfig(
        call_type=CallType.DISCOVERY_INBOUND,
        context=(
            "You reached out to the company and requested information. "
            "You have some level of interest or perceived need."
        ),
        prospect_behavior=(
            "More open and engaged since you initiated contact. Expecting the rep to quickly understand "
            "your inquiry and provide relevant information."
        ),
        response_pattern=(
            "Willing to share information about your challenges and needs. Expect the rep to be prepared "
            "and knowledgeable. Less patient with generic questions."
        ),
        success_criteria=(
            "Rep identifies what triggered the inquiry",
            "Rep understands current situation and challenges",
            "Rep uncovers decision criteria and process",
            "Rep identifies key stakeholders",
            "Rep qualifies budget and timeline",
            "Rep secures demo with clear value proposition",
        ),
        objection_types=(
            "I need to understand pricing first",
            "How is this different from [competitor]?",
            "I need to involve other stakeholders",
            "What's your implementation process?",
            "Can you show me case studies?",
            "We're also evaluating other options",
        ),
        information_sharing=(
            "More forthcoming about challenges and needs. Expect reciprocal value from rep. "
            "Will share details if rep demonstrates expertise."
        ),
        expected_duration_minutes=20,
    ),
    CallType.OBJECTION_HANDLING: CallTypeConfig(
        call_type=CallType.OBJECTION_HANDLING,
        context=(
            "This is a focused practice session on handling specific sales objections. "
            "You will present realistic objections based on your persona."
        ),
        prospect_behavior=(
            "Present objections authentically based on your role and business context. "
            "Allow rep to practice different handling techniques."
        ),
        response_pattern=(
            "Deliver objections naturally in conversation. Respond realistically to rep's handling attempts. "
            "Don't be convinced too easily."
        ),
        success_criteria=(
            "Rep acknowledges and validates objections",
            "Rep asks clarifying questions",
            "Rep provides relevant responses",
            "Rep confirms objection is addressed",
            "Rep maintains positive relationship",
            "Rep advances conversation despite objections",
        ),
        objection_types=(
            "It's too expensive",
            "We don't have budget",
            "The timing isn't right",
            "We need to think about it",
            "I'm not the decision maker",
            "We're happy with our current solution",
        ),
        information_sharing=(
            "Share the reasoning behind objections if asked. "
            "Provide context that helps rep understand the real concern."
        ),
        expected_duration_minutes=10,
    ),
    CallType.ELEVATOR_PITCH: CallTypeConfig(
        call_type=CallType.ELEVATOR_PITCH,
        context="You have a brief, chance encounter with the sales rep. Time is extremely limited.",
        prospect_behavior=(
            "Polite but clearly time-constrained. Need immediate value demonstration to continue conversation."
        ),
        response_pattern=(
            "Show mild interest but emphasize time constraints. Require concise, compelling value proposition. "
            "Make quick decision on follow-up."
        ),
        success_criteria=(
            "Rep delivers concise value proposition",
            "Rep connects to relevant business challenge",
            "Rep creates curiosity or urgency",
            "Rep secures follow-up commitment",
            "Rep respects time constraints",
            "Rep makes memorable impression",
        ),
        objection_types=(
            "I really don't have time right now",
            "This isn't my area",
            "We're not in the market",
            "Just send me an email",
            "I'm running to another meeting",
            "Quick - what's the bottom line?",
        ),
        information_sharing=(
            "Very limited. Only share if rep hits a nerve with something highly relevant. "
            "Focus on whether to grant more time."
        ),
        expected_duration_minutes=3,
    ),
}


# =============================================================================
# DIFFICULTY MODIFIERS
# =============================================================================

DIFFICULTY_MODIFIERS: Dict[int, DifficultyModifier] = {
    1: DifficultyModifier(
        level=1,
        name="Very Cooperative",
        description="Prospect is eager to learn and share information freely",
        cooperation=0.9,
        information_sharing=0.9,
        objection_frequency=0.1,
        trust_required=0.1,
        response_delay_ms=500,
        behavior=(
            "- Respond enthusiastically to questions\n"
            "- Volunteer additional information\n"
            "- Show clear buying signals\n"
            "- Minimal objections or concerns\n"
            "- Quick to see value in solutions"
        ),
        sharing_style=(
            "Share freely about:\n"
            "- Current challenges and pain points\n"
            "- Budget and decision process\n"
            "- Team structure and stakeholders\n"
            "- Timeline and urgency\n"
            "- Success criteria"
        ),
        objection_style=(
            "- Raise minor concerns that are easily addressed\n"
            "- Accept reasonable responses quickly\n"
            "- Focus on implementation details\n"
            "- Show willingness to move forward"
        ),
    ),
    2: DifficultyModifier(
        level=2,
        name="Somewhat Cooperative",
        description="Prospect is willing to engage but needs some prompting",
        cooperation=0.7,
        information_sharing=0.7,
        objection_frequency=0.3,
        trust_required=0.3,
        response_delay_ms=800,
        behavior=(
            "- Respond positively to good questions\n"
            "- Share information with light prompting\n"
            "- Show interest but need convincing\n"
            "- Raise a few reasonable concerns\n"
            "- Open to exploring solutions"
        ),
        sharing_style=(
            "Share with light prompting:\n"
            "- Basic challenges\n"
            "- General budget range\n"
            "- Key stakeholders\n"
            "- Rough timeline\n"
            "- High-level goals"
        ),
        objection_style=(
            "- Present common, reasonable objections\n"
            "- Listen to responses with open mind\n"
            "- Ask follow-up questions for clarity\n"
            "- Can be convinced with good answers"
        ),
    ),
    3: DifficultyModifier(
        level=3,
        name="Moderately Cooperative",
        description="Prospect requires good questions and value demonstration",
        cooperation=0.5,
        information_sharing=0.5,
        objection_frequency=0.5,
        trust_required=0.5,
        response_delay_ms=1000,
        behavior=(
            "- Require specific, relevant questions\n"
            "- Share information when directly asked\n"
            "- Show cautious interest\n"
            "- Present multiple objections\n"
            "- Need clear value demonstration"
        ),
        sharing_style=(
            "Share only when asked directly:\n"
            "- Specific pain points\n"
            "- Budget constraints\n"
            "- Decision makers\n"
            "- Project timeline\n"
            "- Success metrics"
        ),
        objection_style=(
            "- Raise multiple substantive objections\n"
            "- Require detailed responses\n"
            "- Push back on vague answers\n"
            "- Need evidence and examples"
        ),
    ),
    4: DifficultyModifier(
        level=4,
        name="Somewhat Guarded",
        description="Prospect is skeptical and shares information selectively",
        cooperation=0.3,
        information_sharing=0.3,
        objection_frequency=0.7,
        trust_required=0.7,
        response_delay_ms=1500,
        behavior=(
            "- Respond selectively to questions\n"
            "- Guard sensitive information\n"
            "- Show skepticism throughout\n"
            "- Present strong objections\n"
            "- Require proof and references"
        ),
        sharing_style=(
            "Reluctantly share:\n"
            "- Surface-level challenges\n"
            "- Vague budget indications\n"
            "- Limited stakeholder info\n"
            "- Uncertain timeline\n"
            "- General objectives"
        ),
        objection_style=(
            "- Present strong, frequent objections\n"
            "- Challenge most claims\n"
            "- Demand proof and references\n"
            "- Remain skeptical even after responses"
        ),
    ),
    5: DifficultyModifier(
        level=5,
        name="Very Guarded",
        description="Prospect is highly skeptical and requires significant effort",
        cooperation=0.1,
        information_sharing=0.1,
        objection_frequency=0.9,
        trust_required=0.9,
        response_delay_ms=2000,
        behavior=(
            "- Resist most questions initially\n"
            "- Share minimal information\n"
            "- Display active skepticism\n"
            "- Present frequent, strong objections\n"
            "- Demand extensive justification"
        ),
        sharing_style=(
            "Extremely guarded about:\n"
            "- Any internal challenges\n"
            "- Budget information\n"
            "- Decision process\n"
            "- Timeline details\n"
            "- Strategic initiatives"
        ),
        objection_style=(
            "- Object to almost everything\n"
            "- Dismiss initial responses\n"
            "- Require extensive evidence\n"
            "- Find new objections constantly"
        ),
    ),
}

DIFFICULTY_ADJUSTMENTS: Dict[str, str] = {
    "poor": (
        "Since the rep is struggling:\n"
        "- Don't make it impossibly hard\n"
        "- Give subtle hints when stuck\n"
        "- Respond to genuine effort\n"
        "- Allow some progress"
    ),
    "average": (
        "Maintain consistent difficulty:\n"
        "- Stick to the defined level\n"
        "- Respond appropriately to good techniques\n"
        "- Don't give away information too easily\n"
        "- Provide realistic challenges"
    ),
    "excellent": (
        "Since the rep is performing well:\n"
        "- Can be slightly more challenging\n"
        "- Require more sophisticated approaches\n"
        "- Test advanced techniques\n"
        "- Push for deeper discovery"
    ),
}


# =============================================================================
# PERSONA RESPONSE PATTERNS (canned lines)
# =============================================================================

PERSONA_RESPONSE_PATTERNS: Dict[PersonaLevel, Dict[str, Tuple[str, ...]]] = {
    PersonaLevel.JUNIOR: {
        "greeting": (
            "Oh, hi. I wasn't expecting a call. What's this about?",
            "Hello... sorry, who is this again?",
            "Hi there. I'm actually in the middle of something, but what can I help you with?",
            "Oh, a sales call? I'm not really the person who handles these things...",
        ),
        "needs_authority": (
            "I'd need to check with my manager about that.",
            "That's above my pay grade, I'm afraid.",
            "My boss handles all the purchasing decisions.",
            "I can't make that call - you'd need to talk to my manager.",
        ),
        "interested": (
            "That actually sounds helpful for what I do every day.",
            "Oh, that could save me a lot of time!",
            "My manager has been asking us to find ways to be more efficient.",
            "That would definitely make my job easier.",
        ),
    },
    PersonaLevel.MANAGER: {
        "greeting": (
            "Hi, I've got about 10 minutes. What's this regarding?",
            "Hello. I'm between meetings - how can I help you?",
            "Yes, speaking. What can I do for you?",
            "Hi there. Is this about the email you sent? I haven't had a chance to read it yet.",
        ),
        "needs_authority": (
            "I'd need to get buy-in from my director for something this size.",
            "For this budget level, I'd need to loop in our VP.",
            "I can recommend it, but final approval comes from above.",
            "Let me understand the full scope before I involve my leadership.",
        ),
        "interested": (
            "This could really help my team hit our targets.",
            "I like how this addresses our efficiency challenges.",
            "My team has been struggling with exactly this issue.",
            "The ROI potential here is compelling.",
        ),
    },
    PersonaLevel.DIRECTOR: {
        "greeting": (
            "I have 5 minutes. What's the value proposition?",
            "Go ahead, but please be concise. I have a hard stop in 10 minutes.",
            "What's this regarding? I don't recall scheduling this call.",
            "Yes, speaking. What strategic initiative is this about?",
        ),
        "needs_authority": (
            "For strategic investments like this, I'd need board approval.",
            "This would require executive team alignment.",
            "I'd need to build a business case for the C-suite.",
            "Let's see if this aligns with our strategic priorities first.",
        ),
        "interested": (
            "This aligns well with our digital transformation goals.",
            "I see how this could give us a competitive advantage.",
            "The scalability aspect is particularly appealing.",
            "This could significantly impact our market position.",
        ),
    },
    PersonaLevel.VP: {
        "greeting": (
            "I have 3 minutes. What's the executive summary?",
            "This better be worth my time. What's your value prop?",
            "I don't take cold calls. You have 30 seconds to grab my attention.",
            "What transformation opportunity are you bringing me?",
        ),
        "needs_authority": (
            "This would need board approval given the investment size.",
            "I'd need to socialize this with the executive team.",
            "The CEO would need to sign off on this level of strategic change.",
            "Let me understand the full business impact first.",
        ),
        "interested": (
            "This could be a game-changer for our market position.",
            "I see the strategic value in this approach.",
            "This addresses one of our key board-level initiatives.",
            "The competitive differentiation here is significant.",
        ),
    },
    PersonaLevel.C_LEVEL: {
        "greeting": (
            "You have 60 seconds. Impress me.",
            "I don't usually take these calls. This better be exceptional.",
            "What market opportunity are you bringing to my attention?",
            "Make it quick. What's the transformational value?",
        ),
        "needs_authority": (
            "The board would need to approve this level of investment.",
            "I'd need to consider the impact on shareholder value.",
            "This would require a special board session.",
            "Let's see if this is worth bringing to the board.",
        ),
        "interested": (
            "This could transform our entire business model.",
            "I see how this positions us for the next decade.",
            "This addresses our biggest strategic challenge.",
            "The market disruption potential is exactly what we need.",
        ),
    },
}

PERSONALITY_MODIFIERS: Dict[str, str] = {
    "analytical": "Ask for data, metrics, and proof points. Be skeptical of vague claims.",
    "friendly": "Be warm and personable, but still professional. Build rapport naturally.",
    "skeptical": "Question everything. Need strong evidence to be convinced.",
    "time-conscious": "Frequently mention time constraints. Get impatient with rambling.",
    "detail-oriented": "Ask very specific questions. Notice inconsistencies.",
    "relationship-focused": "Value trust and rapport. More open with reps who connect personally.",
    "results-driven": "Focus on outcomes and ROI. Want to see clear business impact.",
    "risk-averse": "Worry about implementation failures. Need reassurance and guarantees.",
    "innovative": "Excited by new solutions. Frustrated with status quo.",
    "process-oriented": "Care about how things will work step-by-step. Want implementation details.",
}


# =============================================================================
# SCORING WEIGHTS
# =============================================================================

METRIC_WEIGHTS: Dict[CallType, Dict[str, float]] = {
    CallType.DISCOVERY_OUTBOUND: {
        "talk_ratio": 0.20, "discovery": 0.30, "objection_handling": 0.20, "confidence": 0.15, "cta": 0.15,
    },
    CallType.DISCOVERY_INBOUND: {
        "talk_ratio": 0.15, "discovery": 0.25, "objection_handling": 0.20, "confidence": 0.20, "cta": 0.20,
    },
    CallType.OBJECTION_HANDLING: {
        "talk_ratio": 0.15, "discovery": 0.15, "objection_handling": 0.35, "confidence": 0.20, "cta": 0.15,
    },
    CallType.ELEVATOR_PITCH: {
        "talk_ratio": 0.10, "discovery": 0.15, "objection_handling": 0.15, "confidence": 0.30, "cta": 0.30,
    },
}

IDEAL_TALK_RATIOS: Dict[CallType, TalkRatioBand] = {
    CallType.DISCOVERY_OUTBOUND: TalkRatioBand(30, 40),
    CallType.DISCOVERY_INBOUND: TalkRatioBand(35, 45),
    CallType.OBJECTION_HANDLING: TalkRatioBand(40, 50),
    CallType.ELEVATOR_PITCH: TalkRatioBand(60, 70),
}

PERFORMANCE_BENCHMARKS: Dict[str, Dict[str, float]] = {
    "beginner": {"overall": 50, "talk_ratio": 60, "discovery": 50, "objection_handling": 40, "confidence": 45, "cta": 40},
    "intermediate": {"overall": 70, "talk_ratio": 75, "discovery": 70, "objection_handling": 65, "confidence": 70, "cta": 65},
    "advanced": {"overall": 85, "talk_ratio": 90, "discovery": 85, "objection_handling": 85, "confidence": 85, "cta": 80},
    "expert": {"overall": 95, "talk_ratio": 95, "discovery": 95, "objection_handling": 95, "confidence": 95, "cta": 95},
}


# =============================================================================
# MODEL PARAMETERS
# =============================================================================

MODEL_PARAMETERS: Dict[str, ModelParameters] = {
    "prospect": ModelParameters(temperature=0.8, max_tokens=500, presence_penalty=0.6, frequency_penalty=0.3),
    "scoring": ModelParameters(temperature=0.3, max_tokens=2000),
    "analysis": ModelParameters(temperature=0.5, max_tokens=1500),
}

MIN_RESPONSE_DELAY_MS = 500
MAX_RESPONSE_DELAY_MS = 2000
RESPONSE_DELAY_STEP_MS = 300
RESPONSE_DELAY_JITTER_MS = 500


# =============================================================================
# TABLE BUNDLE
# =============================================================================

def _freeze(mapping: Mapping) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class EngineTables:
    """Read-only bundle of every static table the engine consults."""
    personas: Mapping[PersonaLevel, PersonaDefinition] = field(default_factory=lambda: _freeze(PERSONA_DEFINITIONS))
    call_types: Mapping[CallType, CallTypeConfig] = field(default_factory=lambda: _freeze(CALL_TYPE_CONFIGS))
    difficulties: Mapping[int, DifficultyModifier] = field(default_factory=lambda: _freeze(DIFFICULTY_MODIFIERS))
    response_patterns: Mapping[PersonaLevel, Mapping[str, Tuple[str, ...]]] = field(
        default_factory=lambda: _freeze(PERSONA_RESPONSE_PATTERNS)
    )
    personality_modifiers: Mapping[str, str] = field(default_factory=lambda: _freeze(PERSONALITY_MODIFIERS))
    metric_weights: Mapping[CallType, Mapping[str, float]] = field(
        default_factory=lambda: _freeze({k: _freeze(v) for k, v in METRIC_WEIGHTS.items()})
    )
    talk_ratio_bands: Mapping[CallType, TalkRatioBand] = field(default_factory=lambda: _freeze(IDEAL_TALK_RATIOS))
    model_parameters: Mapping[str, ModelParameters] = field(default_factory=lambda: _freeze(MODEL_PARAMETERS))

    def persona(self, level: Any) -> PersonaDefinition:
        return self.personas[parse_persona_level(level)]

    def call_type(self, call_type: Any) -> CallTypeConfig:
        return self.call_types[parse_call_type(call_type)]

    def difficulty(self, level: Any) -> DifficultyModifier:
        return self.difficulties[parse_difficulty(level)]

    def weights(self, call_type: Any) -> Mapping[str, float]:
        return self.metric_weights[parse_call_type(call_type)]

    def talk_band(self, call_type: Any) -> TalkRatioBand:
        return self.talk_ratio_bands[parse_call_type(call_type)]


# =============================================================================
# LOOKUPS
# =============================================================================

def _parse_enum(enum_cls, value: Any, label: str):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        for member in enum_cls:
            if member.value == normalized or member.name.lower() == normalized:
                return member
    valid = ", ".join(m.value for m in enum_cls)
    raise ScenarioConfigError(f"Unknown {label} {value!r} (expected one of: {valid})")


def parse_persona_level(value: Any) -> PersonaLevel:
    return _parse_enum(PersonaLevel, value, "persona level")


def parse_call_type(value: Any) -> CallType:
    return _parse_enum(CallType, value, "call type")


def parse_archetype(value: Any) -> PersonaArchetype:
    if value is None:
        return PersonaArchetype.STANDARD
    if isinstance(value, str):
        value = value.replace("_", "-")
    return _parse_enum(PersonaArchetype, value, "persona archetype")


def parse_difficulty(value: Any) -> int:
    if isinstance(value, bool):
        raise ScenarioConfigError(f"Unknown difficulty {value!r}")
    try:
        level = int(value)
    except (TypeError, ValueError):
        raise ScenarioConfigError(f"Unknown difficulty {value!r}") from None
    if level != value and not (isinstance(value, str) and value.strip() == str(level)):
        raise ScenarioConfigError(f"Unknown difficulty {value!r}")
    if not MIN_DIFFICULTY <= level <= MAX_DIFFICULTY:
        raise ScenarioConfigError(
            f"Difficulty must be between {MIN_DIFFICULTY} and {MAX_DIFFICULTY}, got {level}"
        )
    return level


def get_budget_range(level: Any, company_size: str) -> str:
    persona_level = parse_persona_level(level)
    size = (company_size or "").strip().lower()
    ranges = BUDGET_RANGES[persona_level]
    if size not in ranges:
        raise ScenarioConfigError(f"Unknown company size {company_size!r}")
    return ranges[size]


def adjust_difficulty_response(rep_performance: str) -> str:
    return DIFFICULTY_ADJUSTMENTS.get(rep_performance, DIFFICULTY_ADJUSTMENTS["average"])


DEFAULT_TABLES = EngineTables()
