"""
Action-item extraction for meeting transcripts.

Uses Google Gemini with a JSON response schema so the model returns
``{"todos": [{"description": ..., "priority": ...}]}`` directly.
"""

import json
import logging
from typing import Dict, List, Optional

from google import genai

from configs.config import get_config

logger = logging.getLogger(__name__)

cfg = get_config()

SYSTEM_PROMPT = (
    "Extract all action items and to-dos from the following meeting transcript.\n"
    'Return a JSON object with the format {"todos": [{"description": '
    '"Task description", "priority": "High"}, ...]}.\n'
    'Set priority as "High", "Medium", or "Low" based on your judgment.\n'
    "Only include clear action items, not general discussion points.\n"
)

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "todos": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "description": {"type": "STRING"},
                    "priority": {
                        "type": "STRING",
                        "enum": ["High", "Medium", "Low"],
                    },
                },
                "required": ["description", "priority"],
            },
        },
    },
    "required": ["todos"],
}


class TodoExtractionError(RuntimeError):
    """The LLM call failed or returned something other than a todo list."""


def parse_todos(payload) -> List[Dict]:
    """Validate the model output and return the list of todo dicts."""
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise TodoExtractionError(f"Invalid JSON from model: {exc}") from exc

    todos = payload.get("todos") if isinstance(payload, dict) else None
    if not isinstance(todos, list):
        raise TodoExtractionError("Invalid response format from AI")

    return [
        {
            "description": str(item.get("description", "")),
            "priority": item.get("priority"),
        }
        for item in todos
        if isinstance(item, dict)
    ]


def extract_todos(transcript: str, client: Optional[genai.Client] = None) -> List[Dict]:
    """Ask Gemini for the action items in ``transcript``."""
    try:
        client = client or genai.Client(api_key=cfg.GEMINI_API_KEY)
        response = client.models.generate_content(
            model=cfg.GEMINI_MODEL_NAME,
            contents=f"{SYSTEM_PROMPT}\nTranscript:\n{transcript}",
            config={
                "temperature": 0.2,
                "response_mime_type": "application/json",
                "response_schema": RESPONSE_SCHEMA,
            },
        )
    except Exception as exc:
        logger.error("Gemini API error: %s", exc)
        raise TodoExtractionError(f"Failed to extract todos: {exc}") from exc

    payload = response.parsed if response.parsed is not None else response.text
    todos = parse_todos(payload)
    logger.info("Extracted %d todos from transcript", len(todos))
    return todos
