"""
Response normalizer
Turns untrusted model output into typed models, or raises MalformedResponse
"""

import json
import logging
import math
import re
from typing import Any, Dict, List, Optional

import jsonschema
import networkx as nx

from backend.errors import MalformedResponse
from backend.models import (
    CourseModule, CourseStructure, ExamQuestion,
    KnowledgeGraph, KnowledgeLink, KnowledgeNode,
)
from utils.config import JSON_REPAIR_ATTEMPTS

logger = logging.getLogger(__name__)

NODE_STATUSES = ("locked", "available", "completed")

_FENCE_BLOCK = re.compile(r"^```[\w+-]*[ \t]*\n?(.*?)\n?[ \t]*```$", re.DOTALL)
_FENCE_MARKER = re.compile(r"```[\w+-]*\s*|\s*```")


def strip_code_fences(text: str) -> str:
    """Remove surrounding ``` markers (with optional language tag)"""
    stripped = text.strip()
    match = _FENCE_BLOCK.match(stripped)
    if match:
        return match.group(1).strip()
    return _FENCE_MARKER.sub("", stripped).strip()


def safe_parse_json(text: Optional[str], repair_attempts: int = None) -> Any:
    """
    Parse a JSON payload from model output.

    Tries a direct parse first, then strips fenced-code markers and retries.

    Raises:
        MalformedResponse: If nothing parseable remains
    """
    if repair_attempts is None:
        repair_attempts = JSON_REPAIR_ATTEMPTS

    if not text or not text.strip():
        raise MalformedResponse("Empty response", raw_text=text)

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        last_error = e

    candidate = text
    for _ in range(repair_attempts):
        cleaned = strip_code_fences(candidate)
        if cleaned == candidate:
            break
        try:
            return json.loads(cleaned)
        except json.JSONDecodeError as e:
            last_error = e
            candidate = cleaned

    raise MalformedResponse(f"Failed to parse JSON: {last_error}", raw_text=text)


def lint(data: Any, schema: Dict) -> List[str]:
    """Return list of schema error strings or [] if the payload matches."""
    validator = jsonschema.Draft7Validator(schema)
    errors = []
    for error in validator.iter_errors(data):
        location = "/".join(str(p) for p in error.absolute_path) or "<root>"
        errors.append(f"{location}: {error.message}")
    return errors


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _as_text(value: Any, default: str = "") -> str:
    if isinstance(value, str):
        return value
    if value is None or isinstance(value, (dict, list)):
        return default
    return str(value)


def _string_items(value: Any) -> List[str]:
    return [item for item in _as_list(value) if isinstance(item, str)]


def _first(data: Dict, *keys: str) -> Any:
    """First present key; model output mixes camelCase and snake_case"""
    for key in keys:
        if key in data:
            return data[key]
    return None


def normalize_structure(data: Any) -> CourseStructure:
    """
    Shape-check a parsed structure payload.

    Raises:
        MalformedResponse: If the payload is not an object at all
    """
    if not isinstance(data, dict):
        raise MalformedResponse(f"Expected an object, got {type(data).__name__}",
                                raw_text=json.dumps(data)[:500])

    modules = []
    seen_ids = set()
    for position, raw in enumerate(_as_list(data.get("modules")), 1):
        if not isinstance(raw, dict):
            logger.warning(f"Dropping module #{position}: not an object")
            continue

        module_id = _as_text(raw.get("id")).strip() or f"module-{position}"
        if module_id in seen_ids:
            module_id = f"{module_id}-{position}"
        seen_ids.add(module_id)

        modules.append(CourseModule(
            id=module_id,
            title=_as_text(raw.get("title")).strip() or f"Module {position}",
            topics=_string_items(raw.get("topics")),
            learning_objectives=_string_items(_first(raw, "learningObjectives", "learning_objectives")),
        ))

    return CourseStructure(
        title=_as_text(data.get("title")).strip() or "Untitled Course",
        description=_as_text(data.get("description")),
        modules=modules,
    )


def _link_value(raw: Any) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return 1.0
    if math.isnan(raw) or raw < 0:
        return 1.0
    return float(raw)


def normalize_graph(data: Any) -> KnowledgeGraph:
    """
    Shape-check a parsed graph payload.

    Links that reference unknown node ids are dropped. Self-links and
    duplicate links are kept as they are.
    """
    if not isinstance(data, dict):
        return KnowledgeGraph()

    nodes = []
    node_ids = set()
    for raw in _as_list(data.get("nodes")):
        if not isinstance(raw, dict):
            continue
        node_id = _as_text(raw.get("id")).strip()
        if not node_id or node_id in node_ids:
            continue
        node_ids.add(node_id)

        status = raw.get("status")
        group = raw.get("group")
        nodes.append(KnowledgeNode(
            id=node_id,
            label=_as_text(raw.get("label")).strip() or node_id,
            group=group if isinstance(group, int) and not isinstance(group, bool) else 0,
            status=status if status in NODE_STATUSES else "available",
        ))

    links = []
    dropped = 0
    for raw in _as_list(data.get("links")):
        if not isinstance(raw, dict):
            dropped += 1
            continue
        source = _as_text(raw.get("source")).strip()
        target = _as_text(raw.get("target")).strip()
        if source not in node_ids or target not in node_ids:
            dropped += 1
            continue
        links.append(KnowledgeLink(source=source, target=target, value=_link_value(raw.get("value"))))

    if dropped:
        logger.warning(f"Dropped {dropped} link(s) with unknown endpoints")

    graph = nx.DiGraph([(link.source, link.target) for link in links if link.source != link.target])
    try:
        cycle = nx.find_cycle(graph, orientation="original")
        logger.info(f"Knowledge graph contains a dependency cycle: {cycle}")
    except nx.exception.NetworkXNoCycle:
        pass

    return KnowledgeGraph(nodes=nodes, links=links)


def normalize_exam(data: Any) -> List[ExamQuestion]:
    """Shape-check parsed exam questions; unusable questions are dropped."""
    if isinstance(data, dict):
        data = data.get("questions")

    questions = []
    used_ids = set()
    for position, raw in enumerate(_as_list(data)):
        if not isinstance(raw, dict):
            continue

        # Scalars become text in place; the answer index refers to positions
        options = [_as_text(item, default=None) for item in _as_list(raw.get("options"))]
        if None in options:
            logger.warning(f"Dropping exam question #{position}: option is not a scalar")
            continue
        correct = _first(raw, "correctAnswerIndex", "correct_answer_index")
        if not options or not isinstance(correct, int) or isinstance(correct, bool):
            continue
        if not 0 <= correct < len(options):
            logger.warning(f"Dropping exam question #{position}: answer index {correct} out of range")
            continue

        question_id = raw.get("id")
        if not isinstance(question_id, int) or isinstance(question_id, bool) or question_id in used_ids:
            question_id = position
            while question_id in used_ids:
                question_id += 1
        used_ids.add(question_id)

        questions.append(ExamQuestion(
            id=question_id,
            question=_as_text(raw.get("question")).strip() or f"Question {position + 1}",
            options=options,
            correct_answer_index=correct,
            explanation=_as_text(raw.get("explanation")),
        ))

    return questions
