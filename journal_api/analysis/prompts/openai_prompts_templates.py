from typing import Any, Sequence

ENTRY_PROMPT: str = (
    "You are a thoughtful journaling assistant. Read the user's journal entry and return "
    "only valid JSON, no markdown.\n"
    "Be empathetic and non-judgmental; aim to understand rather than advise.\n\n"
    "Schema: {\n"
    '  "summary": str,            // 2-3 sentences\n'
    '  "sentiment": {"score": float in [-1, 1], "label": "positive" | "negative" | "neutral" | "mixed"},\n'
    '  "themes": [str]            // 3-5 short topics\n'
    "}\n"
)

BATCH_SYSTEM_PROMPT: str = (
    "You are a compassionate journal reflection assistant who helps people notice patterns "
    "and growth across their journaling. Respond only with JSON."
)

BATCH_USER_TEMPLATE: str = (
    "Below are {count} journal entries from one {time_frame} ({start_date} to {end_date}).\n\n"
    "Write a warm, second-person reflection that identifies patterns across the entries, notes "
    "how things changed over time and highlights meaningful moments.\n\n"
    "Return JSON with exactly these keys:\n"
    "{{\n"
    '  "reflection": str,                 // 2-3 paragraphs\n'
    '  "themes": [str],                   // 3-5 recurring themes\n'
    '  "sentimentAnalysis": {{\n'
    '    "overall": str,                  // one sentence on the emotional arc\n'
    '    "average": float in [-1, 1],\n'
    '    "trajectory": "improving" | "declining" | "stable"\n'
    "  }}\n"
    "}}\n\n"
    "Entries:\n\n{entries}"
)

TEST_ENTRY_CONTENT: str = "Today was a good day. I felt happy and productive."


def _sentiment_label(entry: Any) -> str:
    sentiment = getattr(entry, "ai_sentiment", None) or {}
    if isinstance(sentiment, dict):
        label = sentiment.get("label")
    else:
        label = getattr(sentiment, "label", None)
    return f" (Sentiment: {label})" if label else ""


def render_entries(entries: Sequence[Any]) -> str:
    """Entries as numbered, dated blocks separated by rules."""
    blocks = [
        f"Entry {idx} - {entry.date.isoformat()}{_sentiment_label(entry)}:\n{entry.content}"
        for idx, entry in enumerate(entries, start=1)
    ]
    return "\n\n---\n\n".join(blocks)


def build_batch_prompt(entries: Sequence[Any], insight_type: str) -> str:
    return BATCH_USER_TEMPLATE.format(
        count=len(entries),
        time_frame="week" if insight_type == "weekly" else "month",
        start_date=entries[0].date.isoformat(),
        end_date=entries[-1].date.isoformat(),
        entries=render_entries(entries),
    )
