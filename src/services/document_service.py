"""文档服务：文件元数据与页面文本"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional, Union

import aiofiles
import aiofiles.os
from pydantic import ValidationError

from src.models.document import DocumentInfo, FileType
from src.utils.exceptions import DataValidationError, DocumentNotFoundError, PersistenceError
from src.utils.logger import LoggerMixin
from src.utils.storage import (
    MARKDOWN_DIR,
    META_FILE,
    get_file_storage_path,
    get_storage_root,
    page_markdown_name,
)

logger = logging.getLogger(__name__)


class DocumentRegistry:
    """文件元数据注册表，每个文件一个 meta.json"""

    def __init__(self, storage_path: Optional[Union[str, Path]] = None):
        self.storage_root = get_storage_root(storage_path)

    def get_file_dir(self, file_id: str) -> Path:
        return get_file_storage_path(file_id, self.storage_root)

    async def get(self, file_id: str) -> DocumentInfo:
        """获取文件信息"""
        meta_path = self.get_file_dir(file_id) / META_FILE
        if not meta_path.exists():
            raise DocumentNotFoundError(file_id)

        async with aiofiles.open(meta_path, 'r', encoding='utf-8') as f:
            content = await f.read()

        try:
            return DocumentInfo.model_validate_json(content)
        except ValidationError as e:
            logger.error(f"文件元数据格式错误: {meta_path}")
            raise DataValidationError(f"文件元数据格式错误: {file_id}") from e

    async def save(self, info: DocumentInfo) -> DocumentInfo:
        """写入文件信息"""
        file_dir = self.get_file_dir(info.id)
        try:
            await aiofiles.os.makedirs(file_dir, exist_ok=True)
            async with aiofiles.open(file_dir / META_FILE, 'w', encoding='utf-8') as f:
                await f.write(info.model_dump_json(indent=2))
        except OSError as e:
            logger.error(f"文件元数据写入失败: {str(e)}")
            raise PersistenceError(f"文件元数据写入失败: {info.id}") from e
        return info


class PageTextService(LoggerMixin):
    """页面文本提供者

    优先读取缓存的 Markdown；txt 文件整体读取，pdf 按页抽取文本。
    任何失败都返回空字符串，表示该页没有内容。
    """

    def __init__(self, registry: DocumentRegistry):
        self.registry = registry
        self.executor = ThreadPoolExecutor(max_workers=2)

    async def get_page_text(self, file_id: str, page_number: int) -> str:
        """获取页面文本"""
        try:
            return await self._load_page_text(file_id, page_number)
        except Exception as e:
            self.logger.warning(
                "页面文本获取失败",
                file_id=file_id,
                page=page_number,
                error_type=type(e).__name__,
                error_message=str(e)
            )
            return ""

    async def _load_page_text(self, file_id: str, page_number: int) -> str:
        markdown_dir = self.registry.get_file_dir(file_id) / MARKDOWN_DIR
        cache_path = markdown_dir / page_markdown_name(page_number)

        if cache_path.exists():
            async with aiofiles.open(cache_path, 'r', encoding='utf-8') as f:
                return await f.read()

        info = await self.registry.get(file_id)

        if info.file_type == FileType.TXT:
            async with aiofiles.open(info.path, 'r', encoding='utf-8') as f:
                content = await f.read()
        elif info.file_type == FileType.PDF:
            loop = asyncio.get_running_loop()
            content = await loop.run_in_executor(
                self.executor,
                self._extract_pdf_page,
                info.path,
                page_number
            )
        else:
            self.logger.info("不支持的文件类型", file_id=file_id, file_type=info.file_type)
            return ""

        if content.strip():
            await aiofiles.os.makedirs(markdown_dir, exist_ok=True)
            async with aiofiles.open(cache_path, 'w', encoding='utf-8') as f:
                await f.write(content)

        return content

    def _extract_pdf_page(self, file_path: str, page_number: int) -> str:
        """同步抽取PDF单页文本"""
        import PyPDF2

        with open(file_path, 'rb') as file:
            reader = PyPDF2.PdfReader(file)
            if page_number < 1 or page_number > len(reader.pages):
                return ""
            text = reader.pages[page_number - 1].extract_text() or ""

        return text.strip()

    def __del__(self):
        """清理资源"""
        if hasattr(self, 'executor'):
            self.executor.shutdown(wait=False)
