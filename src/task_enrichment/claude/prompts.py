"""Prompt templates for the reasoning service."""

SYSTEM_PROMPT = """You are a world-class productivity mentor helping one person \
get a single task done. Be specific to the task, concise and actionable. \
When asked for JSON, respond with the JSON object only."""

STRATEGY_PROMPT = """Provide comprehensive, actionable guidance for completing this task.

TASK: "{title}"
TYPE: {task_type} (create/communicate/consume/coordinate)
PRIORITY: {priority}
{notes_section}
{scheduled_section}

Respond in this exact JSON format:
{{
    "overview": "Strategic approach to this task (2-3 sentences)",
    "key_points": ["Key strategy point 1", "Key strategy point 2", "Key strategy point 3"],
    "actionable_steps": ["First tiny step (<2 min) to build momentum", "Second step", "Third step"],
    "potential_obstacles": ["Potential blocker 1", "Potential blocker 2"],
    "estimated_minutes": 45,
    "confidence": "high|medium|low",
    "thought_process": "Your reasoning for this approach"
}}

GUIDELINES:
- The first actionable step must be tiny and immediate
- CREATE tasks need deep focus blocks, COMMUNICATE tasks need preparation,
  CONSUME tasks need active engagement, COORDINATE tasks should be batched
"""

DURATION_PROMPT = """Estimate how long this task will take for an average person.

TASK: "{title}"
TYPE: {task_type}
{notes_section}

Respond in this exact JSON format:
{{
    "minutes": 45,
    "confidence": "high|medium|low",
    "reasoning": "Brief explanation of your estimate (1-2 sentences)"
}}

GUIDELINES:
- high confidence: clear, well-defined task
- medium confidence: some unknowns but reasonable scope
- low confidence: vague or complex task with many unknowns
- Round to sensible numbers (5, 10, 15, 20, 30, 45, 60, 90, 120)
"""

RESOURCES_PROMPT = """Suggest up to {max_results} YouTube searches that would help \
someone complete this task.

TASK: "{title}"
{context_section}

Respond in this exact JSON format:
{{
    "queries": [
        {{
            "search_query": "how to write project proposal template",
            "display_title": "Proposal Writing Basics",
            "reasoning": "Why this search helps",
            "relevance_score": 0.9
        }}
    ]
}}
"""

CHAT_PROMPT = """You are helping with the task "{title}" ({task_type}).

Conversation so far:
{history}

User: {message}

Reply as the assistant in 1-4 short sentences."""


def optional_line(label: str, value: object | None) -> str:
    """Render "Label: value" or an empty string."""
    if value is None or value == "":
        return ""
    return f"{label}: {value}"
