"""文本分块服务"""

import logging
from typing import List

logger = logging.getLogger(__name__)

PARAGRAPH_SEPARATOR = "\n\n"


class TextChunker:
    """将页面文本切分为长度受限的文本块"""

    def __init__(self, chunk_size: int = 1000, overlap: int = 0):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size 必须大于0: {chunk_size}")
        if overlap < 0 or overlap >= chunk_size:
            raise ValueError(
                f"overlap 必须在 [0, chunk_size) 范围内: overlap={overlap}, chunk_size={chunk_size}"
            )
        self.chunk_size = chunk_size
        self.overlap = overlap

    def chunk(self, text: str) -> List[str]:
        """按字符滑动窗口切分"""
        chunks = []
        stride = self.chunk_size - self.overlap

        for start in range(0, len(text), stride):
            window = text[start:start + self.chunk_size]
            if window.strip():
                chunks.append(window)
            if start + self.chunk_size >= len(text):
                break

        return chunks

    def chunk_by_paragraph(self, text: str) -> List[str]:
        """按空行段落切分，段落累积到 chunk_size 为止

        超过 chunk_size 的单个段落独立成块，不做截断。
        """
        chunks = []
        buffer = ""

        for paragraph in text.split(PARAGRAPH_SEPARATOR):
            if not buffer:
                candidate_length = len(paragraph)
            else:
                candidate_length = len(buffer) + len(PARAGRAPH_SEPARATOR) + len(paragraph)

            if buffer and candidate_length > self.chunk_size:
                if buffer.strip():
                    chunks.append(buffer)
                buffer = paragraph
            elif buffer:
                buffer = buffer + PARAGRAPH_SEPARATOR + paragraph
            else:
                buffer = paragraph

        if buffer.strip():
            chunks.append(buffer)

        logger.debug(f"段落分块完成: {len(chunks)} 个块")
        return chunks


def chunk_by_paragraph(text: str, max_size: int) -> List[str]:
    """按段落切分文本"""
    return TextChunker(chunk_size=max_size).chunk_by_paragraph(text)


def chunk(text: str, size: int, overlap: int = 0) -> List[str]:
    """按字符滑动窗口切分文本，overlap 必须小于 size"""
    return TextChunker(chunk_size=size, overlap=overlap).chunk(text)
