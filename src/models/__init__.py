"""数据模型模块"""

from .base import BaseDataModel
from .document import DocumentInfo, FileType
from .fragment import DocType, Fragment, FragmentMetadata, ScoredFragment
from .question import (
    ExamplesResponse,
    ExercisesResponse,
    ExtractedItem,
    Question,
    QuestionType,
)
from .analysis import AnalysisProgress, AnalysisSession, AnalysisStatus

__all__ = [
    "BaseDataModel",
    "DocumentInfo",
    "FileType",
    "DocType",
    "Fragment",
    "FragmentMetadata",
    "ScoredFragment",
    "Question",
    "QuestionType",
    "ExtractedItem",
    "ExamplesResponse",
    "ExercisesResponse",
    "AnalysisProgress",
    "AnalysisSession",
    "AnalysisStatus",
]
