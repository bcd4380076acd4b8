"""服务层模块"""

from .chunker import TextChunker
from .completion_service import CompletionService, create_completion_service
from .document_service import DocumentRegistry, PageTextService
from .question_analyzer import QuestionAnalyzer, plan_batches
from .question_store import QuestionStore
from .retrieval_store import RetrievalStore
from .session_registry import SessionRegistry

__all__ = [
    'TextChunker',
    'CompletionService',
    'create_completion_service',
    'DocumentRegistry',
    'PageTextService',
    'QuestionAnalyzer',
    'plan_batches',
    'QuestionStore',
    'RetrievalStore',
    'SessionRegistry'
]
