"""Text analysis plugin.

``analyzeText`` prefers the ``textAnalysisModel`` model. When invoked with a
model in its context it asks that model for a JSON analysis; otherwise it
returns a local word and sentence summary.
"""

from __future__ import annotations

import json
import re
from collections import Counter
from typing import Any

from switchboard.capabilities import Capability
from switchboard.extensions import CapabilityPlugin
from switchboard.llm.types import ConversationTurn

PREFERRED_MODEL_ID = "textAnalysisModel"

_STOPWORDS = frozenset(
    "a an and are as at be but by for from has have in is it its of on or that the this to was were will with".split()
)


def _preview(text: str) -> str:
    return text[:100] + ("..." if len(text) > 100 else "")


def _analysis_prompt(options: dict[str, Any]) -> str:
    wanted = []
    if options.get("includeSentiment", True):
        wanted.append("sentiment (positive, negative, or neutral)")
    if options.get("includeKeywords", True):
        wanted.append("important keywords")
    if options.get("includeThemes", True):
        wanted.append("main themes and topics")
    prompt = "You are a text analysis expert. Analyze the following text"
    if wanted:
        prompt += f" and provide the following: {', '.join(wanted)}."
    return prompt + " Format your response as a JSON object with appropriate keys for each analysis type."


def summarize_locally(text: str) -> dict[str, Any]:
    words = re.findall(r"[A-Za-z']+", text.lower())
    sentences = [s for s in re.split(r"[.!?]+", text) if s.strip()]
    keywords = Counter(w for w in words if w not in _STOPWORDS and len(w) > 2)
    return {
        "word_count": len(words),
        "sentence_count": len(sentences),
        "keywords": [word for word, _ in keywords.most_common(5)],
    }


async def analyze_text(params: dict[str, Any], context: dict[str, Any]) -> dict[str, Any]:
    text = str(params.get("text") or "")
    if not text.strip():
        raise ValueError("text is required")

    llm = context.get("llm") or {}
    registry = llm.get("registry")
    if registry is None:
        return {"text": _preview(text), "analysis": summarize_locally(text), "model": None}

    response = await registry.send(
        [
            ConversationTurn(role="system", content=_analysis_prompt(params.get("options") or {})),
            ConversationTurn(role="user", content=text),
        ],
        overrides={"response_format": "json_object"},
        model_id=llm.get("model_id") or PREFERRED_MODEL_ID,
    )
    try:
        analysis: Any = json.loads(response.content)
    except json.JSONDecodeError:
        analysis = response.content
    return {"text": _preview(text), "analysis": analysis, "model": response.model}


class TextAnalysisPlugin(CapabilityPlugin):
    @property
    def name(self) -> str:
        return "text_analysis"

    @property
    def description(self) -> str:
        return "Sentiment, keyword and theme analysis"

    def capabilities(self) -> list[Capability]:
        return [
            Capability(
                name="analyzeText",
                description="Analyze text for sentiment, keywords, and themes",
                handler=analyze_text,
                preferred_model_id=PREFERRED_MODEL_ID,
                parameters={
                    "type": "object",
                    "properties": {
                        "text": {"type": "string", "description": "The text to analyze"},
                        "options": {
                            "type": "object",
                            "description": "Analysis options",
                            "properties": {
                                "includeSentiment": {"type": "boolean"},
                                "includeKeywords": {"type": "boolean"},
                                "includeThemes": {"type": "boolean"},
                            },
                        },
                    },
                    "required": ["text"],
                },
            )
        ]
