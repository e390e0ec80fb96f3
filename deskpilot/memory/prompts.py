"""Prompt templates for help-seeking channels."""

HELP_PROMPT = """I'm trying to: {goal}

Current screen shows: {situation}

Actions I've already tried:
{tried_actions}

What's the SINGLE next action I should take?
Be very specific - tell me exactly what to click, what to type, or what key to press.

Respond in this format:
ACTION: <click|click_at|type_text|press_key|key_combo|navigate|scroll|wait>
VALUE: <what to click on / text to type / key to press / URL to navigate to>
REASONING: <brief explanation>"""

RESEARCH_SYSTEM_PROMPT = (
    "You are a desktop automation expert with web access. "
    "Answer with one concrete next step in the requested format."
)

WEB_DISTILL_PROMPT = """I'm trying to: {goal}

Current screen shows: {situation}

These web search results describe how to do it:
{results}

Based on the results, what's the SINGLE next action I should take on screen?

Respond in this format:
ACTION: <click|click_at|type_text|press_key|key_combo|navigate|scroll|wait>
VALUE: <parameter>
REASONING: <brief explanation citing the result you used>"""
