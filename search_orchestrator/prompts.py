"""Prompt text and focus-mode presets for every generation call."""

from collections.abc import Sequence

from search_orchestrator.models import FocusMode, GapAnalysis, SearchContext

# --- Generation settings ---

QUERY_GENERATION_TEMPERATURE = 0.3
QUERY_GENERATION_MAX_TOKENS = 1024

ANALYSIS_TEMPERATURE = 0.1
ANALYSIS_MAX_TOKENS = 2048

FOLLOWUP_TEMPERATURE = 0.3
FOLLOWUP_MAX_TOKENS = 1024

ANSWER_MAX_TOKENS = 4096

FOCUS_TEMPERATURES: dict[FocusMode, float] = {
    FocusMode.GENERAL: 0.7,
    FocusMode.ACADEMIC: 0.3,
    FocusMode.CREATIVE: 0.9,
    FocusMode.NEWS: 0.5,
    FocusMode.TECHNICAL: 0.2,
    FocusMode.MEDICAL: 0.1,
    FocusMode.LEGAL: 0.1,
}


def temperature_for_focus(focus_mode: FocusMode) -> float:
    return FOCUS_TEMPERATURES.get(focus_mode, FOCUS_TEMPERATURES[FocusMode.GENERAL])


# --- Query generation ---

QUERY_GENERATION_FOCUS: dict[FocusMode, str] = {
    FocusMode.GENERAL: "Generate balanced queries suitable for a broad general audience.",
    FocusMode.ACADEMIC: (
        "Use scholarly terminology and target peer-reviewed research, academic journals "
        "and university publications."
    ),
    FocusMode.CREATIVE: "Include queries that surface inspiration, creative examples and novel ideas.",
    FocusMode.NEWS: "Target recent developments, current events and breaking news coverage.",
    FocusMode.TECHNICAL: (
        "Use precise technical terminology and target official documentation, "
        "implementation guides and specifications."
    ),
    FocusMode.MEDICAL: "Use medical terminology and target clinical research and reputable health organizations.",
    FocusMode.LEGAL: "Use legal terminology and target statutes, case law and regulatory sources.",
}


def build_query_generation_prompt(context: SearchContext, count: int) -> str:
    focus = QUERY_GENERATION_FOCUS.get(context.focus_mode, QUERY_GENERATION_FOCUS[FocusMode.GENERAL])
    return f"""You are a search query optimization expert. Generate exactly {count} diverse search queries \
that together give comprehensive coverage of the user's question.

Original question: "{context.query}"
Focus mode: {context.focus_mode.value}

Focus guidance: {focus}

Diversify the queries using these strategies:
1. Direct question - a clear, direct reformulation of the question
2. Keyword extraction - the essential keywords and key phrases only
3. Synonym expansion - alternative terms and related concepts
4. Facet-specific - one specific aspect or sub-topic of the question
5. Entity-specific - the key people, places, organizations or products involved

Requirements:
- Each query must be distinct and optimized for a web search engine
- Do not repeat the original question verbatim
- Keep each query concise (under 15 words)

Return ONLY the numbered list of queries, one per line, in this format:
1. first query
2. second query"""


# --- Completeness analysis ---

ANALYSIS_FOCUS: dict[FocusMode, str] = {
    FocusMode.GENERAL: "Focus on broad coverage of the main aspects of the question.",
    FocusMode.ACADEMIC: "Focus on scholarly depth, research evidence and citation quality.",
    FocusMode.CREATIVE: "Focus on variety of perspectives, examples and inspiration.",
    FocusMode.NEWS: "Focus on recency, multiple credible sources and current developments.",
    FocusMode.TECHNICAL: "Focus on implementation completeness and technical accuracy.",
    FocusMode.MEDICAL: "Focus on clinical completeness, evidence quality and authoritative medical sources.",
    FocusMode.LEGAL: "Focus on jurisdictional coverage, statutory sources and legal precedent.",
}


def build_analysis_prompt(context: SearchContext, contents: Sequence[str], threshold: int) -> str:
    focus = ANALYSIS_FOCUS.get(context.focus_mode, ANALYSIS_FOCUS[FocusMode.GENERAL])
    numbered = "\n\n".join(f"[{index}] {content}" for index, content in enumerate(contents, start=1))
    return f"""You are a research quality analyst. Evaluate how completely the search results below \
answer the user's question and identify concrete information gaps.

Question: "{context.query}"
Focus mode: {context.focus_mode.value}

Analysis guidance: {focus}

Search results:
{numbered}

Respond with ONLY a JSON object in exactly this format:
{{
  "completeness": <integer 0-100>,
  "informationGaps": ["<specific missing aspect>", ...],
  "gapCategories": {{
    "factual": ["<missing facts, data or statistics>", ...],
    "contextual": ["<missing background or context>", ...],
    "verification": ["<claims needing authoritative confirmation>", ...],
    "depth": ["<topics needing deeper explanation>", ...]
  }},
  "followupTopics": ["<topic worth searching next>", ...],
  "confidenceLevel": <integer 0-100>,
  "needsMoreSearch": <true|false>,
  "reasoning": "<one or two sentences>"
}}

Set "needsMoreSearch" to true only if completeness < {threshold}% and the gaps are likely to be \
filled by further web searches."""


# --- Follow-up queries ---

FOLLOWUP_FOCUS: dict[FocusMode, str] = {
    FocusMode.GENERAL: "Generate clear follow-up queries suitable for a general web search.",
    FocusMode.ACADEMIC: "Generate academic follow-up queries targeting scholarly research and peer-reviewed sources.",
    FocusMode.CREATIVE: "Generate creative follow-up queries targeting examples, ideas and inspiration.",
    FocusMode.NEWS: "Generate news-oriented follow-up queries targeting recent reporting.",
    FocusMode.TECHNICAL: (
        "Generate technical follow-up queries targeting documentation, specifications and implementation details."
    ),
    FocusMode.MEDICAL: (
        "Generate medical and health-related follow-up queries targeting clinical studies "
        "and authoritative health organizations."
    ),
    FocusMode.LEGAL: "Generate legal-focused follow-up queries targeting legal databases, statutes and case law.",
}


def build_followup_prompt(
    context: SearchContext,
    analysis: GapAnalysis,
    max_queries: int,
    previous_queries: Sequence[str] = (),
) -> str:
    focus = FOLLOWUP_FOCUS.get(context.focus_mode, FOLLOWUP_FOCUS[FocusMode.GENERAL])

    gaps = "\n".join(f"- {gap}" for gap in analysis.information_gaps)
    sections = [f"IDENTIFIED INFORMATION GAPS:\n{gaps}"]

    categorized = analysis.gap_categories.non_empty()
    if categorized:
        lines = []
        for category, entries in categorized.items():
            lines.append(f"{category.capitalize()}:")
            lines.extend(f"  - {entry}" for entry in entries)
        sections.append("GAPS BY CATEGORY:\n" + "\n".join(lines))

    if analysis.followup_topics:
        sections.append("SUGGESTED TOPICS:\n" + "\n".join(f"- {topic}" for topic in analysis.followup_topics))

    if previous_queries:
        sections.append(
            "ALREADY SEARCHED (do not repeat):\n" + "\n".join(f"- {query}" for query in previous_queries)
        )

    body = "\n\n".join(sections)
    return f"""You are a search strategist. The search results gathered so far for the question below \
are incomplete. Generate up to {max_queries} new search queries, each addressing one or more of the gaps.

Original question: "{context.query}"
Current completeness: {analysis.completeness}%

{body}

{focus}

Requirements:
- Every query must target at least one identified gap
- Prefer specific, searchable phrasing over broad questions
- Do not repeat the original question

Return ONLY the numbered list of queries, one per line, in this format:
1. first query
2. second query"""


# --- Final answer ---

ANSWER_FOCUS: dict[FocusMode, str] = {
    FocusMode.GENERAL: (
        "Provide a balanced, informative response suitable for general audiences. "
        "Use clear language and helpful examples."
    ),
    FocusMode.ACADEMIC: (
        "Focus on scholarly accuracy and use academic language. Prioritize peer-reviewed sources "
        "and research findings. Include proper citations and maintain objectivity."
    ),
    FocusMode.CREATIVE: (
        "Provide an engaging, creative response that inspires and informs. Use vivid language, "
        "examples, and feel free to explore innovative angles."
    ),
    FocusMode.NEWS: (
        "Focus on recent developments and current events. Prioritize credible news sources and "
        "provide timely, relevant information with proper context."
    ),
    FocusMode.TECHNICAL: (
        "Provide detailed technical information with precise terminology. Focus on implementation "
        "details, specifications, and technical accuracy."
    ),
    FocusMode.MEDICAL: (
        "Provide accurate medical information while emphasizing that this is for informational purposes "
        "only and not medical advice. Recommend consulting healthcare professionals."
    ),
    FocusMode.LEGAL: (
        "Provide legal information while emphasizing that this is for informational purposes only and "
        "not legal advice. Recommend consulting legal professionals for specific cases."
    ),
}


def build_answer_prompt(context: SearchContext, contents: Sequence[str]) -> str:
    focus = ANSWER_FOCUS.get(context.focus_mode, ANSWER_FOCUS[FocusMode.GENERAL])
    numbered = "\n\n".join(f"[{index}] {content}" for index, content in enumerate(contents, start=1))
    return f"""{focus}

User Query: "{context.query}"

Search Results:
{numbered}

Instructions:
- Provide a comprehensive, well-structured answer based on the search results above
- Use numbered citations [1], [2], etc. to reference the sources
- Synthesize information from multiple sources when possible
- Ensure accuracy and relevance to the user's query
- Maintain an appropriate tone for the "{context.focus_mode.value}" focus mode
- Structure your response with clear sections if the topic is complex

Please provide your response now:"""
