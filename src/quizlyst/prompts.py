"""Prompt templates for notes, summaries and quizzes."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Sequence

if TYPE_CHECKING:
    from .quiz.models import Difficulty

__all__ = [
    "NOTES_SYSTEM_PROMPT",
    "CUSTOM_NOTES_SYSTEM_PROMPT",
    "SUMMARY_SYSTEM_PROMPT",
    "REGENERATE_SYSTEM_PROMPT",
    "QUIZ_SYSTEM_PROMPT",
    "build_notes_prompt",
    "build_summary_prompt",
    "build_regenerate_prompt",
    "build_quiz_prompt",
]

NOTES_SYSTEM_PROMPT = (
    "You are a world-class educator and learning specialist. Generate "
    "comprehensive, well-structured study notes in Markdown: ## for main "
    "headings, ### for subheadings, * for bullet points, **bold** for key "
    "terms. Write only the study notes, without introductory or concluding "
    "meta-commentary."
)

CUSTOM_NOTES_SYSTEM_PROMPT = (
    "You are a world-class educator and content analyst. The user has "
    "provided extracted content and specific instructions. Create detailed, "
    "educationally valuable notes from the provided content, following the "
    "user's instructions exactly. Do not ask for additional content; work "
    "with what has been provided."
)

SUMMARY_SYSTEM_PROMPT = (
    "You are an expert at creating comprehensive yet concise summaries. "
    "Write only the summary content without meta-commentary, introductory "
    "phrases or concluding statements."
)

REGENERATE_SYSTEM_PROMPT = (
    "You are a versatile learning assistant that adapts notes based on user "
    "preferences."
)

QUIZ_SYSTEM_PROMPT = (
    "You are an expert educational assessment specialist who writes "
    "high-quality multiple choice questions. Your questions are "
    "pedagogically sound, appropriately challenging and always follow the "
    "requested formatting precisely."
)

_DIFFICULTY_GUIDANCE = {
    "easy": "Focus on basic facts and definitions",
    "medium": "Include some analysis and application questions",
    "hard": (
        "Include complex analysis, synthesis, and evaluation questions"
    ),
}

_NOTES_TEMPLATE = """Create comprehensive and detailed study notes from the following content.

CONTENT TO ANALYZE:
{content}

FORMATTING REQUIREMENTS:
- Use ## for main topics and ### for subtopics
- Use * for bullet points with full explanations
- Use **bold** for key terms and *italics* for emphasis
- Build a hierarchy that flows from general to specific

CONTENT REQUIREMENTS:
- Explain all key concepts, facts and definitions
- Include the examples, figures, dates and data mentioned
- Explain the "why" and "how", not just the "what"
- Highlight cause-and-effect relationships and connections between ideas

IMPORTANT: Write ONLY the study notes content. Do not include phrases like "Here are the study notes" or closing statements."""

_CUSTOM_NOTES_TEMPLATE = """I have extracted the following content from {label}.

EXTRACTED CONTENT:
{content}

USER'S CUSTOM INSTRUCTIONS:
{instructions}

Analyze the content above and create detailed notes following the user's instructions. Use Markdown headers, bullet points and clear structure. Focus on the content provided above."""

_SUMMARY_TEMPLATE = """Based on the following study notes, create a comprehensive yet concise summary.

STUDY NOTES TO SUMMARIZE:
{notes}

Requirements:
- Capture all major topics and key concepts
- Highlight the most important facts and insights
- Keep the logical flow between ideas

Write ONLY the summary as 3-4 well-crafted sentences, without introductory or concluding phrases."""

_QUIZ_TEMPLATE = """Based on the following study notes, create a {difficulty} difficulty quiz with exactly {count} multiple choice questions.

Study Notes:
{notes}

IMPORTANT FORMATTING REQUIREMENTS:
- Create exactly {count} multiple choice questions
- Each question MUST have exactly 4 options (A, B, C, D)
- Difficulty level: {difficulty}
- {guidance}
- STRICTLY follow this exact format for each question:

Question 1: [question text here]
A) [option 1]
B) [option 2]
C) [option 3]
D) [option 4]
Correct Answer: A

Question 2: [question text here]
A) [option 1]
B) [option 2]
C) [option 3]
D) [option 4]
Correct Answer: B

Continue this pattern for all {count} questions.

CRITICAL:
- Number each question sequentially (Question 1, Question 2, etc.)
- Use exactly "A)", "B)", "C)", "D)" for options
- Use exactly "Correct Answer: [letter]" format
- Do not add extra text or explanations
- Make sure all questions are directly related to the provided notes"""


def build_notes_prompt(
    content: str,
    *,
    custom_instructions: Optional[str] = None,
    source_label: str = "the provided source",
) -> tuple[str, str]:
    """Return ``(system, user)`` prompts for note generation."""

    instructions = (custom_instructions or "").strip()
    if instructions:
        user = _CUSTOM_NOTES_TEMPLATE.format(
            label=source_label, content=content, instructions=instructions
        )
        return CUSTOM_NOTES_SYSTEM_PROMPT, user
    return NOTES_SYSTEM_PROMPT, _NOTES_TEMPLATE.format(content=content)


def build_summary_prompt(notes: str) -> tuple[str, str]:
    return SUMMARY_SYSTEM_PROMPT, _SUMMARY_TEMPLATE.format(notes=notes)


def build_regenerate_prompt(
    source_label: str, notes_lines: Sequence[str], instructions: str
) -> tuple[str, str]:
    user = (
        f"Original content: {source_label}.\n\n"
        "Current notes:\n"
        + "\n".join(notes_lines)
        + f"\n\nRegenerate the notes with these instructions: {instructions}"
    )
    return REGENERATE_SYSTEM_PROMPT, user


def build_quiz_prompt(
    notes_lines: Sequence[str], difficulty: "Difficulty", count: int
) -> str:
    """Render the canonical quiz prompt asking for ``count`` questions."""

    return _QUIZ_TEMPLATE.format(
        difficulty=difficulty.value,
        count=count,
        notes="\n".join(notes_lines),
        guidance=_DIFFICULTY_GUIDANCE[difficulty.value],
    )
