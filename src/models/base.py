"""
基础数据模型定义
Base data model definitions
"""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


class BaseDataModel(BaseModel):
    """基础数据模型，提供通用配置和方法"""

    model_config = ConfigDict(
        use_enum_values=True,
        validate_assignment=True,
        validate_default=True
    )

    def to_dict(self) -> Dict[str, Any]:
        """转换为可JSON序列化的字典"""
        return self.model_dump(mode="json")


def validate_identifier(v: str) -> str:
    """验证ID格式"""
    if not v or len(v.strip()) == 0:
        raise ValueError("ID不能为空")
    return v.strip()
