"""
review_dispatcher.py — Ask the model to critique one change unit.

Each call reviews a single unit (or a whole patch in file/pr mode) against
four fixed criteria. Oversized or empty text is skipped before any model
call. A reply of NO_ISSUES_MARKER is turned into a None verdict, which the
driver treats as "post nothing".
"""

import sys

from review_models import DispatchResult

DEFAULT_MODEL = "claude-sonnet-4-20250514"
DEFAULT_MAX_TOKENS = 1000
TEMPERATURE = 0.0
NO_ISSUES_MARKER = "NO_ISSUES"


def build_system_prompt(language: str = "Korean") -> str:
    """Reviewer instructions with the four evaluation criteria."""
    return f"""# Code Review Guidelines
* Answer in {language}.
* You are a strict and thorough code reviewer. Give honest feedback without inaccuracies.
* Evaluate only the code added or modified by the pull request.
* Check the patch against the evaluation criteria below. If several issues fall under one criterion, address each of them.
* Feedback format:
    1. Issue Description: describe the issue in terms of the evaluation criteria.
    2. Relevant Lines: the line range where the issue occurs, as "[line_num]-[line_num]".
    3. Suggested Code: the revised code.
* If there are no issues, reply with exactly {NO_ISSUES_MARKER} and nothing else.

# Evaluation Criteria
1. Pre-condition Check
    * Does the function or method verify the state or value ranges it needs to operate correctly?
2. Runtime Error Check
    * Potential runtime errors and other risks.
3. Security Issue
    * Modules with known serious security flaws, or vulnerabilities in the code itself.
4. Optimization
    * Optimized code when the patch has performance problems.

# Feedback Example
* Issue Description: "The variable is used without a pre-condition check."
* Relevant Lines: "10-12"
* Suggested Code: ..."""


def build_user_message(filename: str, text: str) -> str:
    """The patch excerpt to review."""
    parts = [
        "Below is a code patch. Do a brief code review of it.",
        "Summarize what the patch changes; risks and improvement suggestions are welcome.",
        "",
        f"## File: {filename}",
        "```diff",
        text,
        "```",
    ]
    return "\n".join(parts)


def parse_verdict(raw_text: str | None) -> str | None:
    """Model reply -> verdict. Empty replies and the no-issues marker give None."""
    if not raw_text:
        return None
    text = raw_text.strip()
    if not text or text.strip("`*. ").upper() == NO_ISSUES_MARKER:
        return None
    return text


def exceeds_budget(text: str, max_patch_length: int | None) -> bool:
    """True when text is longer than the configured character budget (None = unbounded)."""
    return max_patch_length is not None and len(text) > max_patch_length


class AnthropicTextGenerator:
    """Text-in/text-out binding to the Anthropic Messages API."""

    def __init__(self, model: str = DEFAULT_MODEL, client=None):
        if client is None:
            try:
                import anthropic
            except ImportError:
                print("ERROR: anthropic package not installed. Run: pip install anthropic")
                sys.exit(1)
            client = anthropic.Anthropic()
        self.client = client
        self.model = model

    def generate_text(
        self, system_prompt: str, user_prompt: str, max_tokens: int, temperature: float,
    ) -> str:
        response = self.client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
        )
        raw_text = ""
        for block in response.content:
            if hasattr(block, "text"):
                raw_text += block.text
        return raw_text


class ReviewDispatcher:
    """Budget check + one model call per unit.

    Model errors propagate; the driver isolates them per unit.
    """

    def __init__(
        self,
        generator,
        max_patch_length: int | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        language: str = "Korean",
    ):
        self.generator = generator
        self.max_patch_length = max_patch_length
        self.max_tokens = max_tokens
        self.system_prompt = build_system_prompt(language)

    def dispatch(self, filename: str, text: str) -> DispatchResult:
        if not text:
            print(f"  {filename} skipped: empty diff")
            return DispatchResult(skipped=True)
        if exceeds_budget(text, self.max_patch_length):
            print(f"  {filename} skipped: diff is too large ({len(text)} > {self.max_patch_length} chars)")
            return DispatchResult(skipped=True)

        raw = self.generator.generate_text(
            self.system_prompt,
            build_user_message(filename, text),
            self.max_tokens,
            TEMPERATURE,
        )
        return DispatchResult(verdict=parse_verdict(raw))


class DryRunGenerator:
    """Stand-in generator for dry runs: reports the prompt size, never calls the API."""

    def generate_text(
        self, system_prompt: str, user_prompt: str, max_tokens: int, temperature: float,
    ) -> str:
        tokens = (len(system_prompt) + len(user_prompt)) // 4
        print(f"    [DRY RUN] Would request review (~{tokens} prompt tokens)")
        return ""
