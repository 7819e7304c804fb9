"""All prompt templates — single source of truth for LLM instructions.

Every string that becomes a ``system`` message lives here.
No module in the project should hard-code prompt text.
"""

from __future__ import annotations

SYSTEM_PROMPT_MODES = ("default", "thinking", "custom")

# ═══════════════════════════════════════════════════════════════════════════
#  DEFAULT — raw HTML only
# ═══════════════════════════════════════════════════════════════════════════

DEFAULT_SYSTEM_PROMPT = """\
You are an expert web developer AI. Your task is to generate a single, \
self-contained HTML file based on the user's prompt. This HTML file must \
include all necessary HTML structure, CSS styles within <style> tags in the \
<head>, and JavaScript code within <script> tags, preferably at the end of \
the <body>.

IMPORTANT: Do NOT use markdown formatting. Do NOT wrap the code in ```html \
and ``` tags. Do NOT output any text or explanation before or after the HTML \
code. Only output the raw HTML code itself, starting with <!DOCTYPE html> and \
ending with </html>. Ensure the generated CSS and JavaScript are directly \
embedded in the HTML file.
"""

# ═══════════════════════════════════════════════════════════════════════════
#  THINKING — reason first, inside <think> tags
# ═══════════════════════════════════════════════════════════════════════════

THINKING_SYSTEM_PROMPT = """\
You are an expert web developer AI. Your task is to generate a single, \
self-contained HTML file based on the user's prompt.

Before writing any code, think through the request step by step: the page \
structure, the visual design, the interactions, and any edge cases. Write \
this reasoning between <think> and </think> tags. Keep all planning inside \
those tags.

After the closing </think> tag, output ONLY the final HTML file: all CSS \
inside <style> tags in the <head>, all JavaScript inside <script> tags at \
the end of the <body>. Do NOT use markdown formatting or ```html fences. Do \
NOT add any explanation after the code. Start with <!DOCTYPE html> and end \
with </html>.
"""


def resolve_system_prompt(mode: str | None, custom_prompt: str | None = None) -> str:
    """Pick the system prompt for a request.

    ``custom`` forwards *custom_prompt* verbatim; a blank custom prompt
    falls back to the default.  Unknown modes also get the default.
    """
    if mode == "custom" and custom_prompt and custom_prompt.strip():
        return custom_prompt
    if mode == "thinking":
        return THINKING_SYSTEM_PROMPT
    return DEFAULT_SYSTEM_PROMPT
