"""
Structured-output schemas sent with each JSON intent
Also used by normalizer.lint for diagnostics
"""

from typing import Dict

STRUCTURE_SCHEMA = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "description": {"type": "string"},
        "modules": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "title": {"type": "string"},
                    "topics": {"type": "array", "items": {"type": "string"}},
                    "learningObjectives": {"type": "array", "items": {"type": "string"}}
                },
                "required": ["id", "title", "topics", "learningObjectives"]
            }
        }
    },
    "required": ["title", "description", "modules"]
}

GRAPH_SCHEMA = {
    "type": "object",
    "properties": {
        "nodes": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "label": {"type": "string"},
                    "group": {"type": "integer"},
                    "status": {"enum": ["locked", "available", "completed"]}
                },
                "required": ["id", "label", "group", "status"]
            }
        },
        "links": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "source": {"type": "string"},
                    "target": {"type": "string"},
                    "value": {"type": "number", "minimum": 0}
                },
                "required": ["source", "target"]
            }
        }
    },
    "required": ["nodes", "links"]
}

# Chat completions require an object at the top level, so questions are wrapped
EXAM_SCHEMA = {
    "type": "object",
    "properties": {
        "questions": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "integer"},
                    "question": {"type": "string"},
                    "options": {"type": "array", "items": {"type": "string"}, "minItems": 2},
                    "correctAnswerIndex": {"type": "integer", "minimum": 0},
                    "explanation": {"type": "string"}
                },
                "required": ["id", "question", "options", "correctAnswerIndex", "explanation"]
            }
        }
    },
    "required": ["questions"]
}


def response_format_for(name: str, schema: Dict) -> Dict:
    """Wrap a schema in the chat completions response_format envelope"""
    return {
        "type": "json_schema",
        "json_schema": {
            "name": name,
            "schema": schema,
            "strict": False,
        }
    }
