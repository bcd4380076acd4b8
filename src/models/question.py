"""
题目相关数据模型
Question data models
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from .base import BaseDataModel, validate_identifier


class QuestionType(str, Enum):
    """题目类型枚举"""
    EXAMPLE = "example"
    EXERCISE = "exercise"


class Question(BaseDataModel):
    """题库中的一道题"""

    id: str = Field(..., description="题目ID: {file_id}_{page}_{type}_{index}")
    file_id: str = Field(..., description="所属文件ID")
    question_type: QuestionType = Field(..., description="题目类型")
    chapter: str = Field(default="", description="章节")
    section: str = Field(default="", description="小节")
    knowledge_points: List[str] = Field(default_factory=list, description="知识点")
    question_text: str = Field(..., description="题目内容")
    answer: str = Field(default="", description="答案")
    analysis: str = Field(default="", description="解析")
    page_number: int = Field(..., ge=0, description="页码")
    has_original_answer: bool = Field(default=False, description="是否为原书答案")

    @field_validator('id')
    @classmethod
    def validate_id(cls, v: str) -> str:
        return validate_identifier(v)

    def is_example(self) -> bool:
        return self.question_type == QuestionType.EXAMPLE


class ExtractedItem(BaseModel):
    """模型返回的单个题目条目"""

    question: str
    answer: str
    analysis: Optional[str] = None
    knowledge_points: Optional[List[str]] = None
    chapter: Optional[str] = None
    section: Optional[str] = None


class ExamplesResponse(BaseModel):
    """例题抽取响应"""

    examples: List[ExtractedItem]


class ExercisesResponse(BaseModel):
    """习题抽取响应"""

    exercises: List[ExtractedItem]
