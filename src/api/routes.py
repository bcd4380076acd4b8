"""API路由定义"""

import logging
from typing import List, Optional
from fastapi import APIRouter, HTTPException, Query as QueryParam, status
from pydantic import BaseModel

from src.models.analysis import AnalysisProgress
from src.models.question import Question, QuestionType
from src.models.fragment import ScoredFragment
from src.api.dependencies import QuestionAnalyzerDep
from src.utils.exceptions import AnalysisAlreadyRunningError, NotFoundError
from src.utils.logger import log_buffer
from src.utils.performance import performance_monitor

logger = logging.getLogger(__name__)

# 创建路由器
router = APIRouter()


class KnowledgeSearchResponse(BaseModel):
    query: str
    results: List[ScoredFragment]


# 分析控制API
@router.post(
    "/analysis/{file_id}/start",
    response_model=AnalysisProgress,
    status_code=status.HTTP_202_ACCEPTED
)
async def start_analysis(file_id: str, analyzer: QuestionAnalyzerDep):
    """开始分析（后台运行）"""
    try:
        return await analyzer.start_background(file_id)

    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AnalysisAlreadyRunningError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"启动分析失败: {str(e)}")
        raise HTTPException(status_code=500, detail="启动分析失败")


@router.post("/analysis/{file_id}/stop", response_model=AnalysisProgress)
async def stop_analysis(file_id: str, analyzer: QuestionAnalyzerDep):
    """停止分析"""
    return analyzer.stop(file_id)


@router.get("/analysis/{file_id}/progress", response_model=AnalysisProgress)
async def get_analysis_progress(file_id: str, analyzer: QuestionAnalyzerDep):
    """获取分析进度"""
    return analyzer.get_progress(file_id)


# 题目API
@router.get("/files/{file_id}/questions", response_model=List[Question])
async def list_questions(
    file_id: str,
    analyzer: QuestionAnalyzerDep,
    question_type: Optional[QuestionType] = None
):
    """获取题目列表"""
    try:
        return await analyzer.list_questions(file_id, question_type)

    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/files/{file_id}/questions/{question_id}", response_model=Question)
async def get_question(file_id: str, question_id: str, analyzer: QuestionAnalyzerDep):
    """获取题目详情"""
    try:
        return await analyzer.get_question(file_id, question_id)

    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/files/{file_id}/knowledge/search", response_model=KnowledgeSearchResponse)
async def search_knowledge(
    file_id: str,
    analyzer: QuestionAnalyzerDep,
    query: str = QueryParam(..., min_length=1),
    top_k: int = QueryParam(10, ge=1, le=100)
):
    """在文件检索库中搜索"""
    try:
        results = await analyzer.search_knowledge(file_id, query, top_k)
        return KnowledgeSearchResponse(query=query, results=results)

    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# 系统状态API
@router.get("/system/performance")
async def get_performance_metrics():
    """获取性能指标"""
    return performance_monitor.get_metrics()


@router.post("/system/performance/reset")
async def reset_performance_metrics():
    """重置性能指标"""
    performance_monitor.reset_metrics()
    return {"message": "性能指标已重置"}


@router.get("/system/logs")
async def get_logs(source: Optional[str] = None):
    """获取最近的日志"""
    return log_buffer.get_entries(source)


@router.delete("/system/logs")
async def clear_logs():
    """清空日志缓存"""
    log_buffer.clear()
    return {"message": "日志已清空"}
