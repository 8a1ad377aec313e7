"""Prompt text and response schemas for the tutoring service.

Format constraints (language, LaTeX convention, JSON shape) are written into
the requests so the responses need no post-processing beyond parsing.
"""

from typing import Iterable, List, Sequence

from physicus.core.models import Message, RigorLevel

TUTOR_NAME = "Physicus Aurelius Maximus"
TUTOR_NICKNAME = "PAM"
GREETING_TRIGGER = "Introduce yourself."

STUDENT_LABEL = "Student"
TUTOR_LABEL = "Tutor"


def level_label(level: RigorLevel) -> str:
    return level.value


def system_instruction(level: RigorLevel, language: str) -> str:
    """Persona and ground rules for a tutoring session."""
    rigor = level_label(level)
    return f"""You MUST conduct the entire conversation, including your introduction, in {language}. All of your responses and questions must be in {language}.

You are an expert physics tutor named {TUTOR_NAME} ({TUTOR_NICKNAME}). Your goal is to help students study for their physics tests at the {rigor} level using the Socratic method. Do not give direct answers. Instead, ask probing and guiding questions to help the student arrive at the answer themselves. Tailor the complexity of your questions and explanations to a {rigor} audience. Break down complex topics like Newtonian mechanics, electromagnetism, or quantum physics into smaller, manageable steps appropriate for this level. If the student is wrong, gently guide them to recognize their mistake without directly pointing it out. Keep your tone encouraging and inquisitive. Start the conversation by introducing yourself and asking what topic the student wants to study. Your responses should be concise and focused on guiding the student.

IMPORTANT: When presenting mathematical equations or formulas, you MUST enclose them in LaTeX format for them to render correctly.
- For block content (on its own line), use double dollar signs: $$...$$. Example: $$F = ma$$
- For inline content, use single dollar signs: $...$. Example: The equation for energy is $E = mc^2$.
This is critical. Do not use markdown code fences (like ```) around the LaTeX."""


def format_message(message: Message) -> str:
    speaker = STUDENT_LABEL if message.is_user else TUTOR_LABEL
    return f"{speaker}: {message.text}\n"


def format_history(history: Sequence[Message], budget: int) -> str:
    """Render the transcript, keeping the newest lines that fit in ``budget`` characters.

    Lines are taken from the most recent message backwards and the scan stops
    at the first line that would overflow, so the kept lines are always a
    contiguous tail of the conversation.
    """
    kept: List[str] = []
    used = 0
    for message in reversed(history):
        line = format_message(message)
        if used + len(line) > budget:
            break
        kept.append(line)
        used += len(line)
    kept.reverse()
    return "".join(kept)


def topics_prompt(formatted_history: str, level: RigorLevel, language: str) -> str:
    return f"""Analyze the following conversation between a {level_label(level)} level physics student and a tutor. Your task is to identify and extract the main physics topics, concepts, and formulas discussed.

Please respond ONLY with a JSON object containing a single key "topics", which is an array of strings. Each string should be a distinct topic. The topics must be in {language}.

Conversation History:
{formatted_history}"""


def worksheet_prompt(topics: Iterable[str], level: RigorLevel, language: str) -> str:
    formatted_topics = ", ".join(topics)
    return f"""You are a helpful assistant that creates practice worksheets for students based on a list of physics topics. Your task is to generate a worksheet in {language} that covers the key concepts from the following list: {formatted_topics}.

The difficulty should be appropriate for a {level_label(level)} student.

The worksheet should have a clear title, a set of 5-7 questions (a mix of multiple-choice, short-answer, and problems), and a separate answer key at the end.

Please respond ONLY with a JSON object that matches the provided schema. Ensure all text, including the title, questions, and answers, is in {language}. If the concepts involve formulas, include them in the questions and answers using LaTeX format (e.g., $v = v_0 + at$ or $$F_{{net}} = ma$$)."""


TOPICS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "topics": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
        },
    },
    "required": ["topics"],
}

WORKSHEET_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "title": {"type": "STRING"},
        "questions": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "questionNumber": {"type": "INTEGER"},
                    "questionText": {"type": "STRING"},
                },
                "required": ["questionNumber", "questionText"],
            },
        },
        "answerKey": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "questionNumber": {"type": "INTEGER"},
                    "answerText": {"type": "STRING"},
                },
                "required": ["questionNumber", "answerText"],
            },
        },
    },
    "required": ["title", "questions", "answerKey"],
}
