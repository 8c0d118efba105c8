"""
Pydantic models for API requests.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class QuestionIn(BaseModel):
    id: Optional[str] = None  # keep the id of an existing question on update
    text: str = ""
    type: str = "text"
    required: bool = True
    options: List[str] = Field(default_factory=list)


class TemplateIn(BaseModel):
    title: str = ""
    description: str = ""
    questions: List[QuestionIn] = Field(default_factory=list)


class StoreIn(BaseModel):
    name: str
    location: str = ""
    manager: str = ""


class StoreUpdate(BaseModel):
    name: Optional[str] = None
    location: Optional[str] = None
    manager: Optional[str] = None


class AssignRequest(BaseModel):
    template_id: str


class BeginRequest(BaseModel):
    store_id: str
    template_id: Optional[str] = None
    report_id: Optional[str] = None  # edit an existing report


class AnswerRequest(BaseModel):
    # text/date: the string; number: number or numeric string; choice: the option
    # None or "" clears the answer
    value: Any = None


class BulkAnswersRequest(BaseModel):
    answers: Dict[str, Any]


class JumpRequest(BaseModel):
    index: int


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class SummaryRequest(BaseModel):
    messages: List[ChatMessage] = Field(default_factory=list)
    mode: Literal["summary", "chat"] = "summary"
    store_ids: Optional[List[str]] = None
