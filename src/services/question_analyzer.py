"""题目分析服务：逐页抽取例题、生成习题答案"""

import asyncio
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from src.config.settings import Settings, get_settings
from src.models.analysis import AnalysisProgress, AnalysisStatus
from src.models.document import DocumentInfo
from src.models.fragment import DocType, Fragment, FragmentMetadata, ScoredFragment
from src.models.question import Question, QuestionType
from src.services.chunker import TextChunker
from src.services.completion_service import CompletionService
from src.services.document_service import DocumentRegistry, PageTextService
from src.services.question_store import QuestionStore
from src.services.response_parser import parse_examples, parse_exercises
from src.services.retrieval_store import RetrievalStore
from src.services.session_registry import SessionRegistry
from src.utils.exceptions import (
    AnalysisCancelledError,
    ExternalServiceError,
    ResponseParseError,
)
from src.utils.logger import log_error
from src.utils.performance import measure_time, monitor_performance
from src.utils.storage import RAG_INDEX_FILE

logger = logging.getLogger(__name__)


def plan_batches(
    total_pages: int,
    large_document_threshold: int = 400,
    batch_size: int = 20
) -> List[Tuple[int, int]]:
    """划分页码批次，返回闭区间 [start, end] 列表

    超过阈值的大文档按固定大小分批，其余文档一个批次覆盖全部页面。
    """
    if total_pages <= 0:
        return []

    size = batch_size if total_pages > large_document_threshold else total_pages
    return [
        (start, min(start + size - 1, total_pages))
        for start in range(1, total_pages + 1, size)
    ]


class QuestionAnalyzer:
    """文档分析流水线

    页面严格按顺序处理，第 N 页的习题只能检索到第 N 页及之前写入的例题。
    停止请求只在批次入口、页面入口和写快照之前检查，进行中的外部调用不会被打断。
    """

    def __init__(
        self,
        document_registry: DocumentRegistry,
        page_text_service: PageTextService,
        completion_service: Optional[CompletionService],
        question_store: QuestionStore,
        sessions: Optional[SessionRegistry] = None,
        settings: Optional[Settings] = None
    ):
        self.document_registry = document_registry
        self.page_text_service = page_text_service
        self.completion_service = completion_service
        self.question_store = question_store
        self.sessions = sessions or SessionRegistry()
        self.settings = settings or get_settings()
        self.chunker = TextChunker(
            chunk_size=self.settings.chunk_size,
            overlap=self.settings.chunk_overlap
        )
        self._tasks: Dict[asyncio.Task, str] = {}

    def index_path(self, file_id: str) -> Path:
        return self.document_registry.get_file_dir(file_id) / RAG_INDEX_FILE

    async def start(self, file_id: str) -> AnalysisProgress:
        """运行完整分析并返回最终进度"""
        info = await self._prepare(file_id)
        return await self._run(file_id, info)

    async def start_background(self, file_id: str) -> AnalysisProgress:
        """注册会话后在后台运行分析，立即返回当前进度"""
        info = await self._prepare(file_id)
        task = asyncio.create_task(self._run_in_background(file_id, info))
        self._tasks[task] = file_id
        task.add_done_callback(lambda t: self._tasks.pop(t, None))
        return self.sessions.get_progress(file_id)

    def stop(self, file_id: str) -> AnalysisProgress:
        """请求停止分析"""
        progress = self.sessions.request_stop(file_id)
        logger.info(f"收到停止请求: {file_id}, 当前状态: {progress.status}")
        return progress

    def get_progress(self, file_id: str) -> AnalysisProgress:
        return self.sessions.get_progress(file_id)

    async def list_questions(
        self,
        file_id: str,
        question_type: Optional[QuestionType] = None
    ) -> List[Question]:
        """获取题目列表"""
        questions = await self.question_store.load(file_id)
        if question_type is not None:
            questions = [q for q in questions if q.question_type == question_type]
        return questions

    async def get_question(self, file_id: str, question_id: str) -> Question:
        """获取题目详情"""
        return await self.question_store.get(file_id, question_id)

    async def search_knowledge(self, file_id: str, query: str, top_k: int = 10) -> List[ScoredFragment]:
        """在文件的检索库中搜索"""
        await self.document_registry.get(file_id)
        store = await RetrievalStore.open(self.index_path(file_id))
        return store.search(query, top_k)

    async def shutdown(self):
        """取消所有后台分析任务"""
        running = dict(self._tasks)
        for task in running:
            task.cancel()
        if running:
            await asyncio.gather(*running, return_exceptions=True)

        # 尚未开始执行就被取消的任务不会进入 _run
        for task, file_id in running.items():
            if task.cancelled():
                self.sessions.finish(file_id, AnalysisStatus.STOPPED, "分析已取消")
                self.sessions.release(file_id)

    async def _prepare(self, file_id: str) -> DocumentInfo:
        info = await self.document_registry.get(file_id)
        self.sessions.start(file_id, total_pages=info.total_pages)
        logger.info(f"开始分析: {file_id}, 共 {info.total_pages} 页")
        return info

    async def _run_in_background(self, file_id: str, info: DocumentInfo):
        try:
            await self._run(file_id, info)
        except Exception as e:
            # 状态已在 _run 中置为 error
            log_error(e, {"file_id": file_id, "operation": "analysis"})

    async def _run(self, file_id: str, info: DocumentInfo) -> AnalysisProgress:
        try:
            try:
                async with measure_time("analysis_run"):
                    try:
                        questions = await self._analyze(file_id, info)
                        self._checkpoint(file_id)
                        await self.question_store.save(file_id, questions)
                    except AnalysisCancelledError:
                        questions = None
            except asyncio.CancelledError:
                logger.info(f"分析任务被取消: {file_id}")
                self.sessions.finish(file_id, AnalysisStatus.STOPPED, "分析已取消")
                raise
            except Exception as e:
                logger.error(f"分析失败: {file_id}, {str(e)}")
                self.sessions.finish(file_id, AnalysisStatus.ERROR, f"分析失败: {str(e)}")
                raise

            if questions is None:
                logger.info(f"分析已停止: {file_id}")
                return self.sessions.get_progress(file_id)

            progress = self.sessions.finish(
                file_id,
                AnalysisStatus.COMPLETED,
                "分析完成",
                current_page=info.total_pages,
                total_pages=info.total_pages,
                current_step="完成",
                questions_found=len(questions)
            )
            logger.info(f"分析完成: {file_id}, 共找到 {len(questions)} 道题")
            return progress
        finally:
            self.sessions.release(file_id)

    def _checkpoint(self, file_id: str):
        if self.sessions.should_stop(file_id):
            raise AnalysisCancelledError(file_id)

    async def _analyze(self, file_id: str, info: DocumentInfo) -> List[Question]:
        store = await RetrievalStore.open(self.index_path(file_id))
        questions: List[Question] = []
        batches = plan_batches(
            info.total_pages,
            self.settings.large_document_threshold,
            self.settings.batch_size
        )

        for start, end in batches:
            self._checkpoint(file_id)
            self.sessions.update(
                file_id,
                current_page=start,
                current_step="分析批次",
                message=f"正在分析第 {start} - {end} 页",
                questions_found=len(questions)
            )

            for page in range(start, end + 1):
                self._checkpoint(file_id)
                questions.extend(
                    await self._analyze_page(file_id, page, store, len(questions))
                )

        return questions

    @monitor_performance("analyze_page")
    async def _analyze_page(
        self,
        file_id: str,
        page: int,
        store: RetrievalStore,
        questions_found: int
    ) -> List[Question]:
        text = await self.page_text_service.get_page_text(file_id, page)
        if not text.strip():
            logger.debug(f"第 {page} 页没有内容: {file_id}")
            return []

        for i, chunk in enumerate(self.chunker.chunk_by_paragraph(text)):
            await store.add_document(Fragment(
                id=f"{file_id}_{page}_{i}",
                content=chunk,
                metadata=FragmentMetadata(
                    file_id=file_id,
                    page_number=page,
                    chunk_index=i,
                    doc_type=DocType.KNOWLEDGE.value
                )
            ))

        self.sessions.update(
            file_id,
            current_page=page,
            current_step="识别题目",
            message=f"正在识别第 {page} 页的题目",
            questions_found=questions_found
        )

        if self.completion_service is None:
            return []

        page_questions = []
        for question in await self._extract_examples(file_id, page, text):
            await store.add_document(Fragment(
                id=question.id,
                content=f"题目：{question.question_text}\n答案：{question.answer}",
                metadata=FragmentMetadata(
                    file_id=file_id,
                    page_number=page,
                    chunk_index=0,
                    doc_type=DocType.EXAMPLE.value,
                    chapter=question.chapter,
                    section=question.section
                )
            ))
            page_questions.append(question)

        context = store.build_context(
            text,
            self.settings.context_max_tokens,
            self.settings.context_top_k
        )
        page_questions.extend(await self._extract_exercises(file_id, page, text, context))
        return page_questions

    async def _extract_examples(self, file_id: str, page: int, text: str) -> List[Question]:
        try:
            raw = await self.completion_service.analyze_examples(text)
            return parse_examples(raw, file_id, page)
        except (ExternalServiceError, ResponseParseError) as e:
            logger.warning(f"第 {page} 页例题抽取失败，按0道题处理: {str(e)}")
            return []

    async def _extract_exercises(
        self,
        file_id: str,
        page: int,
        text: str,
        context: str
    ) -> List[Question]:
        try:
            raw = await self.completion_service.analyze_exercises(text, context)
            return parse_exercises(raw, file_id, page)
        except (ExternalServiceError, ResponseParseError) as e:
            logger.warning(f"第 {page} 页习题抽取失败，按0道题处理: {str(e)}")
            return []
