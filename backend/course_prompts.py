# course_prompts.py
"""Prompt templates for each request intent
- structure extraction, lesson generation, knowledge graph, exam, chat
- depth instructions for lesson verbosity
"""

from __future__ import annotations

from backend.models import ContentDepth

# ---------------------------------------------------------------------------
# Structure extraction
# ---------------------------------------------------------------------------

STRUCTURE_PROMPT = """
Analyze this syllabus PDF. Extract the course structure into a strictly formatted JSON object.
The structure must include a course title, a brief description, and a list of modules.
Each module must have an id, a title, a list of specific topics, and learning objectives.
"""

# ---------------------------------------------------------------------------
# Lesson generation
# ---------------------------------------------------------------------------

DEPTH_INSTRUCTIONS = {
    ContentDepth.SUMMARY: "Provide a high-level summary with bullet points and key terms only. Be concise.",
    ContentDepth.STANDARD: "Provide a standard comprehensive lesson note. Balance clear explanations with sufficient detail.",
    ContentDepth.DEEP_DIVE: (
        "Provide an academic deep dive. Expand on every point with rigorous detail, examples, "
        "analogies, and theoretical background. Cite concepts where appropriate."
    ),
}

LESSON_PROMPT_TEMPLATE = """
You are an expert tutor. Create a lesson content for the module: "{MODULE_TITLE}".
Focus on these topics: {TOPICS}.

STYLE GUIDE:
- Use Markdown formatting (Headers, Bold, Lists).
- Be encouraging but academic.
- {DEPTH_INSTRUCTION}

Based ONLY on the context of the provided syllabus, but you may expand with general knowledge to explain concepts better.
"""

# ---------------------------------------------------------------------------
# Knowledge graph and exam
# ---------------------------------------------------------------------------

GRAPH_PROMPT = """
Generate a knowledge graph representation of this course.
Identify key concepts (nodes) and their dependencies (links).
If Concept B requires Concept A, create a link from A to B.
Give every node a status: "available" for entry-level concepts, "locked" for concepts with unmet prerequisites.
Return JSON.
"""

EXAM_PROMPT_TEMPLATE = """
Generate a {NUM_QUESTIONS}-question multiple choice exam for the module: "{MODULE_TITLE}".
Ensure questions test understanding, not just recall.
Each question needs an integer id, the options, the zero-based index of the correct option and a short explanation.
Return strictly JSON.
"""

# ---------------------------------------------------------------------------
# Chat tutor
# ---------------------------------------------------------------------------

CHAT_SYSTEM_TEMPLATE = """
You are a helpful, academic 'Sidekick' tutor.
The user is currently studying this content: --- {CONTEXT}... ---
Answer their questions based on this context.
If they ask to "Quiz me", generate 3 brief questions.
If they upload an image, analyze it in the context of the course.
"""

EXPLAIN_SELECTION_TEMPLATE = 'Explain this specific part to me like I\'m 5: "{SELECTION}"'

DEFAULT_CHAT_CONTEXT = "General Syllabus Context"


def build_lesson_prompt(module_title: str, topics: list[str], depth: ContentDepth) -> str:
    """Fill the lesson template for one module/depth pair."""
    return LESSON_PROMPT_TEMPLATE.format(
        MODULE_TITLE=module_title,
        TOPICS=", ".join(topics),
        DEPTH_INSTRUCTION=DEPTH_INSTRUCTIONS.get(depth, DEPTH_INSTRUCTIONS[ContentDepth.STANDARD]),
    ).strip()


def build_exam_prompt(module_title: str, num_questions: int) -> str:
    return EXAM_PROMPT_TEMPLATE.format(NUM_QUESTIONS=num_questions, MODULE_TITLE=module_title).strip()


def build_chat_system_prompt(context: str, limit: int) -> str:
    """System instruction carrying a bounded slice of the lesson."""
    return CHAT_SYSTEM_TEMPLATE.format(CONTEXT=(context or DEFAULT_CHAT_CONTEXT)[:limit]).strip()


def explain_selection_prompt(selection: str) -> str:
    """Chat prompt asking for a simple explanation of a lesson excerpt."""
    return EXPLAIN_SELECTION_TEMPLATE.format(SELECTION=selection.strip())
