"""
知识片段相关数据模型
Retrieval fragment data models
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from .base import BaseDataModel, validate_identifier


class DocType(str, Enum):
    """片段类型枚举"""
    KNOWLEDGE = "knowledge"
    EXAMPLE = "example"
    EXERCISE = "exercise"


class FragmentMetadata(BaseDataModel):
    """片段元数据"""

    file_id: str = Field(..., description="所属文件ID")
    page_number: int = Field(default=0, ge=0, description="页码")
    chunk_index: int = Field(default=0, ge=0, description="页内块索引")
    doc_type: str = Field(default=DocType.KNOWLEDGE.value, description="片段类型")
    chapter: str = Field(default="", description="章节")
    section: str = Field(default="", description="小节")


class Fragment(BaseDataModel):
    """检索库中的一个片段"""

    id: str = Field(..., description="唯一标识符")
    content: str = Field(..., description="文本内容")
    metadata: FragmentMetadata
    # 预留字段，词法检索不使用
    embedding: Optional[List[float]] = Field(None, description="向量表示")

    @field_validator('id')
    @classmethod
    def validate_id(cls, v: str) -> str:
        return validate_identifier(v)

    @property
    def doc_type(self) -> str:
        return self.metadata.doc_type

    @property
    def chapter(self) -> str:
        return self.metadata.chapter


class ScoredFragment(BaseModel):
    """带分数的检索结果"""

    fragment: Fragment
    score: float = Field(..., ge=0.0, description="相关性评分")
