"""
Data models for Syllabus Engine
Course structure, lessons, knowledge graph, exams and chat
"""

from enum import Enum
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class ContentDepth(str, Enum):
    """Lesson verbosity setting"""
    SUMMARY = "Summary"
    STANDARD = "Standard"
    DEEP_DIVE = "Deep Dive"


class CourseModule(BaseModel):
    """A module extracted from the syllabus"""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    topics: List[str] = Field(default_factory=list)
    learning_objectives: List[str] = Field(default_factory=list)


class CourseStructure(BaseModel):
    """Course outline; replaced wholesale on re-upload"""
    model_config = ConfigDict(frozen=True)

    title: str = "Untitled Course"
    description: str = ""
    modules: List[CourseModule] = Field(default_factory=list)

    def get_module(self, module_id: str) -> Optional[CourseModule]:
        for module in self.modules:
            if module.id == module_id:
                return module
        return None


class LessonContent(BaseModel):
    """Markdown lesson for one module at one depth"""
    model_config = ConfigDict(frozen=True)

    module_id: str
    depth: ContentDepth
    text: str


NodeStatus = Literal["locked", "available", "completed"]


class KnowledgeNode(BaseModel):
    """A concept in the knowledge graph"""
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    group: int = 0
    status: NodeStatus = "available"


class KnowledgeLink(BaseModel):
    """Dependency edge: source must be learned before target"""
    model_config = ConfigDict(frozen=True)

    source: str
    target: str
    value: float = Field(default=1.0, ge=0)


class KnowledgeGraph(BaseModel):
    """Concept nodes and dependency links"""
    model_config = ConfigDict(frozen=True)

    nodes: List[KnowledgeNode] = Field(default_factory=list)
    links: List[KnowledgeLink] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]


class ExamQuestion(BaseModel):
    """Multiple choice question with a single correct option"""
    model_config = ConfigDict(frozen=True)

    id: int
    question: str
    options: List[str]
    correct_answer_index: int
    explanation: str = ""


class ImageAttachment(BaseModel):
    """Base64 image attached to a chat turn"""
    model_config = ConfigDict(frozen=True)

    data: str
    media_type: str = "image/jpeg"

    def data_url(self) -> str:
        return f"data:{self.media_type};base64,{self.data}"


class ChatMessage(BaseModel):
    """One turn of the tutor conversation"""
    model_config = ConfigDict(frozen=True)

    id: str
    role: Literal["user", "assistant"]
    content: str
    timestamp: float
    has_image: bool = False
