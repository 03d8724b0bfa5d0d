"""Prompt templates and inventory helpers for study pack generation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List


PROMPT_REGISTRY_VERSION = "2026-10-18"


PROMPT_SUMMARY = """You are an expert study assistant. Analyze the provided text and create a structured summary.

Return ONLY valid JSON, without markdown or extra text, with exactly these fields:
{
  "tldr": "a brief summary of about five lines",
  "key_concepts": ["3 to 7 key concepts"],
  "definitions": [{"term": "string", "definition": "string"}],
  "bullet_summary": ["5 to 10 bullet points summarizing the main content"]
}

Base everything strictly on the provided text. Do not invent outside information."""

PROMPT_QUIZ = """You are an expert quiz generator. Based on the text and summary provided, create {question_count} multiple choice questions to test understanding.

Return ONLY valid JSON, without markdown or extra text, in exactly this format:
{{
  "questions": [
    {{
      "question": "string",
      "options": ["string", "string", "string", "string"],
      "correct_answer": 0,
      "explanation": "brief explanation of why the answer is correct"
    }}
  ]
}}

Rules:
- Provide exactly 4 distinct options per question.
- correct_answer is the index (0-3) of the correct option.
- Vary the difficulty of the questions."""

PROMPT_FLASHCARDS = """You are an expert study assistant creating flashcards for spaced repetition.

Create between {min_cards} and {max_cards} flashcards from the provided text. Use the listed definitions and key concepts as a starting point, and add other important facts from the text.

Return ONLY valid JSON, without markdown or extra text, in exactly this format:
{{
  "flashcards": [{{"front": "a clear term, concept or question", "back": "a concise, accurate answer"}}]
}}"""

QUIZ_USER_TEMPLATE = """Original Text:
{source_text}

Summary:
{tldr}"""

FLASHCARDS_USER_TEMPLATE = """Definitions:
{definitions}

Key concepts:
{key_concepts}

Source text:
{source_text}"""

AUDIO_SCRIPT_TEMPLATE = "Here's your summary. {tldr}. Key concepts include: {key_concepts}."


@dataclass(frozen=True)
class PromptRecord:
    prompt_id: str
    name: str
    template: str


PROMPT_RECORDS: List[PromptRecord] = [
    PromptRecord("summary", "Structured summary", PROMPT_SUMMARY),
    PromptRecord("quiz", "Multiple choice quiz", PROMPT_QUIZ),
    PromptRecord("flashcards", "Flashcards", PROMPT_FLASHCARDS),
    PromptRecord("audio_script", "Narration script", AUDIO_SCRIPT_TEMPLATE),
]


def get_prompt_template(prompt_id: str) -> str:
    safe_id = str(prompt_id or "").strip()
    for record in PROMPT_RECORDS:
        if record.prompt_id == safe_id:
            return record.template
    raise KeyError(f"Unknown prompt id: {safe_id}")


def get_prompt_metadata() -> Dict[str, object]:
    return {
        "version": PROMPT_REGISTRY_VERSION,
        "count": len(PROMPT_RECORDS),
        "ids": [record.prompt_id for record in PROMPT_RECORDS],
    }
