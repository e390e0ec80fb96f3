"""Prompt templates for code-writing actions."""

CODER_SYSTEM_PROMPT = """You are a careful software engineer. Write clean, working code that
follows the conventions of the language. Reply with the complete file
contents only, in a single fenced code block, with no explanation."""

GENERATE_CODE_PROMPT = """Write the file {path}.

Requirements:
{description}"""

EDIT_CODE_PROMPT = """Here is the current content of {path}:

```
{content}
```

Apply this change and return the whole updated file:
{instruction}"""
