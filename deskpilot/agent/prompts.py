"""Prompt templates for the autonomous loop."""

THINKING_SYSTEM_PROMPT = """You operate a computer on the user's behalf, one action at a time.
You see the screen only through the description you are given. Prefer the
most direct action, and say "stuck" rather than guessing blindly."""

THINKING_PROMPT = """GOAL: {goal}

CURRENT SCREEN: {situation}

PREVIOUS ACTIONS:
{recent_actions}

ATTEMPT: {attempt}/{max_attempts}
STUCK COUNT: {stuck_count}

Based on what you see, what's the SINGLE next action to take?

Available actions:
- click: Click at current mouse position (VALUE: left, right or middle)
- click_at: Click at specific coordinates (VALUE: x,y)
- move_to: Move mouse (VALUE: x,y coordinates)
- type_text: Type text (VALUE: text to type)
- press_key: Press a key (VALUE: enter, tab, escape, etc.)
- key_combo: Press key combination (VALUE: control+s, command+c, etc.)
- scroll: Scroll (VALUE: up or down)
- navigate: Open URL (VALUE: full URL)
- focus_window: Bring a window to the front (VALUE: window title)
- open_app: Launch an application (VALUE: application name)
- wait: Wait for something (VALUE: seconds)
- task: Hand a well-defined multi-step sub-goal to the task planner (VALUE: instruction)
- done: Goal is accomplished
- stuck: Can't figure out what to do

Respond EXACTLY in this format:
ACTION: <action_type>
VALUE: <parameter>
REASONING: <brief why>"""
