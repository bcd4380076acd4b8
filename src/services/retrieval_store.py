"""题库检索库：增量写入的词法检索知识库"""

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import aiofiles
import aiofiles.os
from pydantic import TypeAdapter, ValidationError

from src.models.fragment import DocType, Fragment, ScoredFragment
from src.utils.exceptions import DataValidationError, PersistenceError
from src.utils.performance import monitor_performance

logger = logging.getLogger(__name__)

DOC_TYPE_WEIGHTS: Dict[str, float] = {
    DocType.EXAMPLE.value: 1.5,
    DocType.KNOWLEDGE.value: 1.2,
    DocType.EXERCISE.value: 1.0,
}
DEFAULT_TYPE_WEIGHT = 0.8

# 粗略估计: 4 个字符约等于 1 个 token
CHARS_PER_TOKEN = 4

_fragment_list = TypeAdapter(List[Fragment])


class RetrievalStore:
    """单个文件的检索库

    片段按插入顺序保存，每次变更都整体重写 JSON 索引文件。
    同一文件同时只有一个分析任务持有该对象，因此不加锁。
    通过 open() 创建，直接构造的对象不会读取已有索引。
    """

    def __init__(self, index_path: Path):
        self.index_file = Path(index_path)
        self.documents: List[Fragment] = []
        self._ids: set = set()

    @classmethod
    async def open(cls, index_path: Path) -> "RetrievalStore":
        """打开检索库并加载已有索引"""
        store = cls(index_path)
        await store._load_index()
        return store

    async def _load_index(self):
        """从文件加载索引"""
        if not await aiofiles.os.path.exists(self.index_file):
            logger.info(f"检索索引文件不存在，创建新索引: {self.index_file}")
            return

        try:
            async with aiofiles.open(self.index_file, 'r', encoding='utf-8') as f:
                raw = await f.read()
        except OSError as e:
            logger.error(f"读取检索索引失败: {str(e)}")
            raise PersistenceError(f"读取检索索引失败: {self.index_file}") from e

        try:
            documents = _fragment_list.validate_json(raw) if raw.strip() else []
        except ValidationError as e:
            logger.error(f"检索索引格式错误: {self.index_file}")
            raise DataValidationError(f"检索索引格式错误: {self.index_file}") from e

        for doc in documents:
            if doc.id not in self._ids:
                self._ids.add(doc.id)
                self.documents.append(doc)

        logger.info(f"检索索引已加载: {len(self.documents)} 个片段")

    async def _save_index(self):
        """保存索引到文件（先写临时文件再替换）"""
        payload = json.dumps(
            [doc.to_dict() for doc in self.documents],
            ensure_ascii=False,
            indent=2
        )
        tmp_file = self.index_file.with_name(self.index_file.name + ".tmp")

        try:
            await aiofiles.os.makedirs(self.index_file.parent, exist_ok=True)
            async with aiofiles.open(tmp_file, 'w', encoding='utf-8') as f:
                await f.write(payload)
            await aiofiles.os.replace(tmp_file, self.index_file)
        except OSError as e:
            logger.error(f"保存检索索引失败: {str(e)}")
            raise PersistenceError(f"保存检索索引失败: {self.index_file}") from e

    async def add_document(self, doc: Fragment) -> bool:
        """添加片段，ID 已存在时不做任何修改"""
        if doc.id in self._ids:
            return False

        self.documents.append(doc)
        self._ids.add(doc.id)
        try:
            await self._save_index()
        except PersistenceError:
            # 回滚，保证内存与磁盘一致
            self.documents.pop()
            self._ids.discard(doc.id)
            raise
        return True

    async def add_documents(self, docs: Iterable[Fragment]) -> int:
        """按顺序批量添加片段，返回新增数量"""
        added = 0
        for doc in docs:
            if await self.add_document(doc):
                added += 1
        return added

    @monitor_performance("retrieval_search")
    def search(self, query: str, top_k: int = 10) -> List[ScoredFragment]:
        """词法检索：命中查询词数量 × 类型权重"""
        query_terms = query.lower().split()
        if not query_terms or top_k <= 0:
            return []

        results = []
        for doc in self.documents:
            content = doc.content.lower()
            matched = sum(1 for term in query_terms if term in content)
            if matched == 0:
                continue
            weight = DOC_TYPE_WEIGHTS.get(doc.metadata.doc_type, DEFAULT_TYPE_WEIGHT)
            results.append(ScoredFragment(fragment=doc, score=matched * weight))

        # sort 是稳定排序，同分时保持插入顺序
        results.sort(key=lambda r: r.score, reverse=True)
        return results[:top_k]

    def build_context(self, query: str, max_tokens: int, top_k: int = 10) -> str:
        """按 token 预算拼接检索结果作为上下文"""
        context = ""

        for result in self.search(query, top_k):
            entry = self.format_entry(result.fragment)
            if (len(context) + len(entry)) / CHARS_PER_TOKEN > max_tokens:
                break
            context += entry

        return context

    @staticmethod
    def format_entry(doc: Fragment) -> str:
        chapter = f"（{doc.metadata.chapter}）" if doc.metadata.chapter else ""
        return f"【{doc.metadata.doc_type}】{chapter}\n{doc.content}\n\n"

    def get_by_type(self, doc_type: str) -> List[Fragment]:
        """按类型获取片段"""
        return [doc for doc in self.documents if doc.metadata.doc_type == doc_type]

    def get_by_chapter(self, chapter: str) -> List[Fragment]:
        """按章节获取片段"""
        return [doc for doc in self.documents if doc.metadata.chapter == chapter]

    def get_examples(self) -> List[Fragment]:
        return self.get_by_type(DocType.EXAMPLE.value)

    def get_knowledge(self) -> List[Fragment]:
        return self.get_by_type(DocType.KNOWLEDGE.value)

    def get(self, doc_id: str) -> Optional[Fragment]:
        for doc in self.documents:
            if doc.id == doc_id:
                return doc
        return None

    async def clear(self):
        """清空检索库"""
        previous = self.documents
        self.documents = []
        self._ids = set()
        try:
            await self._save_index()
        except PersistenceError:
            self.documents = previous
            self._ids = {doc.id for doc in previous}
            raise
        logger.info(f"检索库已清空: {self.index_file}")

    def __len__(self) -> int:
        return len(self.documents)

    def is_empty(self) -> bool:
        return not self.documents

    def get_stats(self) -> Dict:
        """获取索引统计信息"""
        by_type: Dict[str, int] = {}
        for doc in self.documents:
            by_type[doc.metadata.doc_type] = by_type.get(doc.metadata.doc_type, 0) + 1
        return {
            "document_count": len(self.documents),
            "by_type": by_type,
            "index_file_exists": self.index_file.exists(),
        }
