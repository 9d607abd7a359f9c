"""
Individual AI-authorship signals.

Each check returns a DetectionSignal; weights passed in are the maximum the
signal can contribute.
"""

import re
from typing import Optional

from sentinel.analysis.types import CommitData, DetectionSignal, FileChange

AI_COAUTHOR_PATTERN = re.compile(
    r"^co-authored-by:.*\b(copilot|claude|anthropic|chatgpt|openai|cursor|"
    r"codeium|gemini|tabnine|codewhisperer|aider|devin)\b",
    re.IGNORECASE | re.MULTILINE,
)

AI_TOOL_PATTERNS = [
    (re.compile(r"copilot", re.IGNORECASE), "Copilot"),
    (re.compile(r"cursor", re.IGNORECASE), "Cursor"),
    (re.compile(r"claude", re.IGNORECASE), "Claude"),
    (re.compile(r"chatgpt", re.IGNORECASE), "ChatGPT"),
    (re.compile(r"gpt-4", re.IGNORECASE), "GPT-4"),
    (re.compile(r"gemini", re.IGNORECASE), "Gemini"),
    (re.compile(r"codewhisperer", re.IGNORECASE), "CodeWhisperer"),
    (re.compile(r"tabnine", re.IGNORECASE), "Tabnine"),
    (re.compile(r"ai.assist", re.IGNORECASE), "AI assist"),
    (re.compile(r"generated.*code", re.IGNORECASE), "generated code mention"),
]

HIGH_VELOCITY_LINES = 500
VERY_HIGH_VELOCITY_LINES = 1000

LATE_NIGHT_HOURS = range(2, 5)  # 02:00-04:59 UTC

GENERIC_VAR_PATTERNS = [
    re.compile(r"const\s+(data|result|response|value|item|temp|tmp)\s*="),
    re.compile(r"let\s+(data|result|response|value|item|temp|tmp)\s*="),
    re.compile(r"function\s+(handleClick|handleChange|handleSubmit|getData|fetchData)\s*\("),
]

EXCESSIVE_COMMENT_PATTERNS = [
    re.compile(r"//\s*(TODO|FIXME|NOTE|HACK):", re.IGNORECASE),
    re.compile(r"//\s*.{50,}"),  # long inline comments
    re.compile(r"/\*\*[\s\S]{200,}?\*/"),  # long doc blocks
]

BOILERPLATE_INDICATORS = [
    re.compile(r"import\s+\{[^}]{100,}\}\s+from"),  # large import lists
    re.compile(
        r"export\s+(default\s+)?function\s+\w+\s*\([^)]*\)\s*\{[\s\S]{10,50}\}"
    ),  # short exported functions
]

MIN_ADDED_CHARS = 50
STYLE_MATCH_SCORE = 1.5


def _unmatched(name: str) -> DetectionSignal:
    return DetectionSignal(name=name, weight=0, matched=False)


def check_ai_coauthor(commit: CommitData, weight: float) -> DetectionSignal:
    """Co-authored-by trailer naming an AI assistant. Definitive when present."""
    match = AI_COAUTHOR_PATTERN.search(commit.message or "")
    if match:
        return DetectionSignal(
            name="ai_coauthor",
            weight=weight,
            matched=True,
            detail=f"Co-authored-by {match.group(1)}",
        )
    return _unmatched("ai_coauthor")


def check_pr_mentions_ai(commit: CommitData, weight: float) -> DetectionSignal:
    if not commit.pr_body:
        return _unmatched("pr_mentions_ai")

    found = [tool for pattern, tool in AI_TOOL_PATTERNS if pattern.search(commit.pr_body)]
    if not found:
        return _unmatched("pr_mentions_ai")

    return DetectionSignal(
        name="pr_mentions_ai",
        weight=min(weight, weight * (0.5 + len(found) * 0.25)),
        matched=True,
        detail=f"PR mentions: {', '.join(found)}",
    )


def check_velocity(commit: CommitData, weight: float) -> DetectionSignal:
    total = sum(f.additions + f.deletions for f in commit.files)

    if total >= VERY_HIGH_VELOCITY_LINES:
        return DetectionSignal(
            name="high_velocity",
            weight=weight,
            matched=True,
            detail=f"{total} lines changed (very high)",
        )
    if total >= HIGH_VELOCITY_LINES:
        return DetectionSignal(
            name="high_velocity",
            weight=weight * 0.6,
            matched=True,
            detail=f"{total} lines changed",
        )
    return _unmatched("high_velocity")


def check_time_of_day(commit: CommitData, weight: float) -> DetectionSignal:
    """Weak signal: commits between 02:00 and 04:59 UTC."""
    hour = commit.timestamp.utctimetuple().tm_hour
    if hour in LATE_NIGHT_HOURS:
        return DetectionSignal(
            name="late_night",
            weight=weight,
            matched=True,
            detail=f"Commit at {hour}:00 UTC",
        )
    return _unmatched("late_night")


def _added_lines(patch: str) -> str:
    return "\n".join(
        line
        for line in patch.split("\n")
        if line.startswith("+") and not line.startswith("+++")
    )


def _first_hit(patterns: list[re.Pattern], text: str, min_count: int) -> Optional[re.Pattern]:
    for pattern in patterns:
        if sum(1 for _ in pattern.finditer(text)) >= min_count:
            return pattern
    return None


def check_code_style(file: FileChange, weight: float) -> DetectionSignal:
    """
    Score the added lines of one file for generic, over-commented or
    boilerplate-shaped code.
    """
    if not file.patch:
        return _unmatched("generic_style")

    added = _added_lines(file.patch)
    if len(added) < MIN_ADDED_CHARS:
        return _unmatched("generic_style")

    score = 0.0
    details = []

    if _first_hit(GENERIC_VAR_PATTERNS, added, 2):
        score += 1
        details.append("generic variable names")
    if _first_hit(EXCESSIVE_COMMENT_PATTERNS, added, 3):
        score += 1
        details.append("excessive comments")
    if _first_hit(BOILERPLATE_INDICATORS, added, 1):
        score += 0.5
        details.append("boilerplate patterns")

    if score >= STYLE_MATCH_SCORE:
        return DetectionSignal(
            name="generic_style",
            weight=min(weight, weight * (score / 2)),
            matched=True,
            detail=", ".join(details),
        )
    return _unmatched("generic_style")
