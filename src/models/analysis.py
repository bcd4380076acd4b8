"""
分析进度相关数据模型
Analysis progress data models
"""

from enum import Enum

from pydantic import BaseModel, Field

from .base import BaseDataModel


class AnalysisStatus(str, Enum):
    """分析状态枚举"""
    IDLE = "idle"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    ERROR = "error"
    STOPPED = "stopped"


TERMINAL_STATUSES = (
    AnalysisStatus.COMPLETED,
    AnalysisStatus.ERROR,
    AnalysisStatus.STOPPED,
)


class AnalysisProgress(BaseDataModel):
    """分析进度"""

    file_id: str
    status: AnalysisStatus = AnalysisStatus.IDLE
    current_page: int = Field(default=0, ge=0)
    total_pages: int = Field(default=0, ge=0)
    current_step: str = ""
    questions_found: int = Field(default=0, ge=0)
    message: str = ""

    @classmethod
    def idle(cls, file_id: str) -> "AnalysisProgress":
        return cls(file_id=file_id, message="未开始分析")

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class AnalysisSession(BaseModel):
    """单个文件的分析会话，由会话注册表独占"""

    file_id: str
    should_stop: bool = False
    active: bool = False
    progress: AnalysisProgress
