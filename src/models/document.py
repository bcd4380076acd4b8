"""文档相关数据模型"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import Field

from .base import BaseDataModel


class FileType(str, Enum):
    """文件类型枚举"""
    PDF = "pdf"
    WORD = "word"
    PPT = "ppt"
    TXT = "txt"
    UNKNOWN = "unknown"


_EXTENSION_TYPES = {
    "pdf": FileType.PDF,
    "doc": FileType.WORD,
    "docx": FileType.WORD,
    "ppt": FileType.PPT,
    "pptx": FileType.PPT,
    "txt": FileType.TXT,
}


class DocumentInfo(BaseDataModel):
    """文档基本信息（meta.json）"""
    id: str
    name: str
    display_name: str = ""
    file_type: FileType = FileType.UNKNOWN
    path: str = ""
    size: int = Field(default=0, ge=0)
    created_at: Optional[datetime] = None
    total_pages: int = Field(default=0, ge=0)

    @staticmethod
    def file_type_from_name(file_name: str) -> FileType:
        """根据扩展名判断文件类型"""
        extension = Path(file_name).suffix.lstrip(".").lower()
        return _EXTENSION_TYPES.get(extension, FileType.UNKNOWN)
