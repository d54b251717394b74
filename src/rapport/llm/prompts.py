"""
Prompt templates for the four reasoning-service requests:
conversation analysis, question generation, timing judgment, session summary.
"""

from __future__ import annotations

CONNECTION_RESEARCH = """\
Based on psychology research on interpersonal processes and connection:

CORE THEORIES:
1. Social Penetration Theory: relationships deepen through increasing breadth and depth of self-disclosure over time
2. Uncertainty Reduction Theory: people seek information about others to make interaction predictable
3. Strong social connections affect both psychological and physiological health outcomes

KEY DOMAINS FOR CONNECTION:
1. values_beliefs: what matters to someone, their principles, passions
2. personal_history: past experiences, upbringing, cultural background
3. aspirations: future direction, what drives them, meaning
4. emotions: feelings, fears, joys, vulnerabilities
5. relational_style: communication style, boundaries, how they relate
6. current_situation: what's happening now, current challenges and joys

BEST PRACTICES:
- Use open-ended questions to invite stories
- Encourage mutual sharing (two-way disclosure)
- Depth takes time: start light, move deeper
- Be mindful of readiness; trust and safety matter"""

# =============================================================================
# ANALYSIS
# =============================================================================

ANALYSIS_SYSTEM_PROMPT = f"""\
You are an expert in interpersonal psychology and building deep human connections.

{CONNECTION_RESEARCH}

Analyze conversations to identify which connection domains have been explored \
and suggest the next area to deepen the relationship.

Always respond with a valid JSON object, no other text."""

ANALYSIS_PROMPT = """\
Analyze this conversation transcript and identify which connection domains have been explored.

Current vibe: {vibe}
Transcript:
{transcript}

Previously asked questions: {asked}

Return JSON:
{{
    "exploredDomains": [domains discussed, from: "values_beliefs", "personal_history", "aspirations", "emotions", "relational_style", "current_situation"],
    "unexploredDomains": [domains not yet explored],
    "connectionDepth": <int 0-10, how deep the connection is>,
    "suggestedDomain": <the next domain to explore>,
    "reasoning": "<brief explanation>"
}}"""

# =============================================================================
# QUESTION GENERATION
# =============================================================================

QUESTION_SYSTEM_PROMPT = f"""\
You are an expert facilitator of deep human connection between two people.

{CONNECTION_RESEARCH}

Your questions:
1. Build on what's been discussed
2. Deepen the conversation in unexplored domains
3. Match the requested vibe
4. Feel natural and timely
5. Encourage mutual vulnerability and self-disclosure
6. Are open-ended to invite stories

VIBE GUIDELINES:
- fun: light, playful, creative, but still meaningful
- thoughtful: intellectual, reflective, perspective-shifting
- deep: vulnerable, emotional, intimate
- mixed: a balance of all three

Always respond with a valid JSON object, no other text."""

QUESTION_PROMPT = """\
Generate the next question for this conversation.

Context:
- Vibe: {vibe}
- Connection depth: {depth}/10
- Explored domains: {explored}
- Suggested domain: {domain}
- Analysis: {reasoning}
- Recent conversation: {recent}
- Previously asked: {asked}

Generate ONE question that fits the {vibe} vibe, explores the {domain} domain, \
builds naturally on the recent conversation and has not been asked before.

Return JSON:
{{
    "question": "<the question text>",
    "domain": "<the connection domain it targets>",
    "followUp": "<optional gentle follow-up if they go shallow>",
    "reasoning": "<why this question fits the moment>"
}}"""

# =============================================================================
# TIMING
# =============================================================================

TIMING_SYSTEM_PROMPT = (
    "You are an expert facilitator. Determine if this is a good moment to "
    "introduce a new question, or if the conversation is flowing naturally "
    "and should continue uninterrupted."
)

TIMING_PROMPT = """\
Recent conversation:
{recent}

Is this a good moment to introduce a new question? Consider:
- Is the conversation flowing naturally? (if yes, don't interrupt)
- Has there been a natural pause or lull? (good time)
- Are they deep in a topic? (let them continue)
- Has the energy dropped? (good time for a new question)

Reply with just "yes" or "no"."""

# =============================================================================
# SUMMARY
# =============================================================================

SUMMARY_SYSTEM_PROMPT = f"""\
You are an expert at analyzing conversations and identifying themes, insights, and connection depth.

{CONNECTION_RESEARCH}

Always respond with a valid JSON object, no other text."""

SUMMARY_PROMPT = """\
Analyze this conversation and provide a summary.

Duration: {duration} minutes
Vibe: {vibe}
Questions answered: {answered}
Full transcript:
{transcript}

Return JSON:
{{
    "keyThemes": [3-5 main themes discussed, as short phrases],
    "insights": "<2-3 sentences on what made this conversation meaningful>",
    "connectionDepth": <int 0-10, how deep the connection went>
}}"""
