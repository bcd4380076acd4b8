"""模型输出解析：从自由文本中提取JSON并转换为题目"""

import logging
from typing import List, Type, TypeVar

from pydantic import BaseModel, ValidationError

from src.models.question import (
    ExamplesResponse,
    ExercisesResponse,
    ExtractedItem,
    Question,
    QuestionType,
)
from src.utils.exceptions import ResponseParseError

logger = logging.getLogger(__name__)

ResponseT = TypeVar("ResponseT", bound=BaseModel)


def extract_json(text: str) -> str:
    """截取第一个 '{' 到最后一个 '}' 之间的内容（含括号）

    这是尽力而为的启发式方法：多个 JSON 块、字符串中的括号等情况会失败，
    找不到括号时原样返回，交给后续的严格解析报错。
    """
    start = text.find("{")
    if start == -1:
        return text
    end = text.rfind("}")
    if end < start:
        return text
    return text[start:end + 1]


def question_id(file_id: str, page: int, question_type: QuestionType, index: int) -> str:
    return f"{file_id}_{page}_{question_type.value}_{index}"


def _parse(text: str, schema: Type[ResponseT]) -> ResponseT:
    payload = extract_json(text)
    try:
        return schema.model_validate_json(payload)
    except ValidationError as e:
        logger.warning(f"模型输出解析失败({schema.__name__}): {e.error_count()} 个错误")
        raise ResponseParseError(f"无法解析模型输出为 {schema.__name__}") from e


def _to_questions(
    items: List[ExtractedItem],
    file_id: str,
    page: int,
    question_type: QuestionType
) -> List[Question]:
    return [
        Question(
            id=question_id(file_id, page, question_type, i),
            file_id=file_id,
            question_type=question_type,
            chapter=item.chapter or "",
            section=item.section or "",
            knowledge_points=item.knowledge_points or [],
            question_text=item.question,
            answer=item.answer,
            analysis=item.analysis or "",
            page_number=page,
            has_original_answer=question_type == QuestionType.EXAMPLE,
        )
        for i, item in enumerate(items)
    ]


def parse_examples(text: str, file_id: str, page: int) -> List[Question]:
    """解析例题抽取结果"""
    response = _parse(text, ExamplesResponse)
    return _to_questions(response.examples, file_id, page, QuestionType.EXAMPLE)


def parse_exercises(text: str, file_id: str, page: int) -> List[Question]:
    """解析习题抽取结果"""
    response = _parse(text, ExercisesResponse)
    return _to_questions(response.exercises, file_id, page, QuestionType.EXERCISE)
