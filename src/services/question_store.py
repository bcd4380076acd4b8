"""题目结果存储：每个文件一份完整快照"""

import json
import logging
from pathlib import Path
from typing import List, Optional, Union

import aiofiles
import aiofiles.os
from pydantic import TypeAdapter, ValidationError

from src.models.question import Question
from src.utils.exceptions import DataValidationError, PersistenceError, QuestionNotFoundError
from src.utils.storage import QUESTIONS_DIR, QUESTIONS_FILE, get_file_storage_path, get_storage_root

logger = logging.getLogger(__name__)

_question_list = TypeAdapter(List[Question])


class QuestionStore:
    """题目快照的读写，写入总是整体替换"""

    def __init__(self, storage_path: Optional[Union[str, Path]] = None):
        self.storage_root = get_storage_root(storage_path)

    def snapshot_path(self, file_id: str) -> Path:
        return get_file_storage_path(file_id, self.storage_root) / QUESTIONS_DIR / QUESTIONS_FILE

    async def save(self, file_id: str, questions: List[Question]) -> Path:
        """覆盖写入题目快照"""
        path = self.snapshot_path(file_id)
        tmp_path = path.with_name(path.name + ".tmp")
        payload = json.dumps(
            [q.to_dict() for q in questions],
            ensure_ascii=False,
            indent=2
        )

        try:
            await aiofiles.os.makedirs(path.parent, exist_ok=True)
            async with aiofiles.open(tmp_path, 'w', encoding='utf-8') as f:
                await f.write(payload)
            await aiofiles.os.replace(tmp_path, path)
        except OSError as e:
            logger.error(f"题目快照写入失败: {str(e)}")
            raise PersistenceError(f"题目快照写入失败: {file_id}") from e

        logger.info(f"题目快照已保存: {file_id}, {len(questions)} 道题")
        return path

    async def load(self, file_id: str) -> List[Question]:
        """读取题目快照，不存在时返回空列表"""
        path = self.snapshot_path(file_id)
        if not path.exists():
            return []

        async with aiofiles.open(path, 'r', encoding='utf-8') as f:
            content = await f.read()

        try:
            return _question_list.validate_json(content)
        except ValidationError as e:
            logger.error(f"题目快照格式错误: {path}")
            raise DataValidationError(f"题目快照格式错误: {file_id}") from e

    async def get(self, file_id: str, question_id: str) -> Question:
        """获取题目详情"""
        for question in await self.load(file_id):
            if question.id == question_id:
                return question
        raise QuestionNotFoundError(file_id, question_id)
