"""文件存储路径工具"""

import re
from pathlib import Path
from typing import Optional, Union

from src.config.settings import get_settings
from src.utils.exceptions import DocumentNotFoundError

_FILE_ID_PATTERN = re.compile(r"[A-Za-z0-9_\-]+")

META_FILE = "meta.json"
RAG_INDEX_FILE = "rag_index.json"
QUESTIONS_DIR = "questions"
QUESTIONS_FILE = "all_questions.json"
MARKDOWN_DIR = "markdown"


def get_storage_root(storage_path: Optional[Union[str, Path]] = None) -> Path:
    """获取存储根路径"""
    return Path(storage_path or get_settings().storage_path)


def get_file_storage_path(
    file_id: str,
    storage_path: Optional[Union[str, Path]] = None
) -> Path:
    """获取单个文件的存储目录；非法ID视为不存在"""
    if not file_id or not _FILE_ID_PATTERN.fullmatch(file_id):
        raise DocumentNotFoundError(file_id)
    return get_storage_root(storage_path) / file_id


def page_markdown_name(page_number: int) -> str:
    return f"{page_number:04d}_page.md"
