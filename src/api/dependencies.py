"""API依赖注入"""

import logging
from typing import Annotated
from fastapi import Depends

from src.services import (
    DocumentRegistry,
    PageTextService,
    QuestionAnalyzer,
    QuestionStore,
    SessionRegistry,
    create_completion_service,
)

logger = logging.getLogger(__name__)

# 全局服务实例
_question_analyzer = None


def build_question_analyzer() -> QuestionAnalyzer:
    """按当前配置组装分析服务"""
    registry = DocumentRegistry()
    return QuestionAnalyzer(
        document_registry=registry,
        page_text_service=PageTextService(registry),
        completion_service=create_completion_service(),
        question_store=QuestionStore(),
        sessions=SessionRegistry()
    )


async def get_question_analyzer() -> QuestionAnalyzer:
    """获取分析服务实例"""
    global _question_analyzer
    if _question_analyzer is None:
        _question_analyzer = build_question_analyzer()
    return _question_analyzer


# 依赖注入类型注解
QuestionAnalyzerDep = Annotated[QuestionAnalyzer, Depends(get_question_analyzer)]


async def cleanup_services():
    """清理服务资源"""
    global _question_analyzer

    logger.info("清理服务资源")
    if _question_analyzer is not None:
        await _question_analyzer.shutdown()

    _question_analyzer = None
