"""分析会话注册表"""

import logging
import threading
from typing import Any, Dict, Optional

from src.models.analysis import AnalysisProgress, AnalysisSession, AnalysisStatus
from src.utils.exceptions import AnalysisAlreadyRunningError

logger = logging.getLogger(__name__)


class SessionRegistry:
    """文件ID到分析会话的映射

    控制接口（停止、查询）与运行中的分析任务共享该对象，
    所有操作都是持锁的短临界区，锁不会跨越 await。
    """

    def __init__(self):
        self._sessions: Dict[str, AnalysisSession] = {}
        self._lock = threading.Lock()

    def start(self, file_id: str, total_pages: int = 0) -> AnalysisProgress:
        """注册新会话；同一文件已有运行中的任务时拒绝"""
        with self._lock:
            existing = self._sessions.get(file_id)
            if existing is not None and existing.active:
                raise AnalysisAlreadyRunningError(file_id)

            progress = AnalysisProgress(
                file_id=file_id,
                status=AnalysisStatus.ANALYZING,
                current_page=0,
                total_pages=total_pages,
                current_step="初始化",
                questions_found=0,
                message="正在准备分析...",
            )
            self._sessions[file_id] = AnalysisSession(
                file_id=file_id,
                should_stop=False,
                active=True,
                progress=progress,
            )
            return progress.model_copy(deep=True)

    def request_stop(self, file_id: str) -> AnalysisProgress:
        """请求停止：只设置标志，运行中的任务在下一个检查点退出"""
        with self._lock:
            session = self._sessions.get(file_id)
            if session is None:
                return AnalysisProgress.idle(file_id)
            if session.active:
                session.should_stop = True
                session.progress.status = AnalysisStatus.STOPPED
                session.progress.message = "分析已停止"
            return session.progress.model_copy(deep=True)

    def should_stop(self, file_id: str) -> bool:
        with self._lock:
            session = self._sessions.get(file_id)
            return session is not None and session.should_stop

    def is_active(self, file_id: str) -> bool:
        with self._lock:
            session = self._sessions.get(file_id)
            return session is not None and session.active

    def get_progress(self, file_id: str) -> AnalysisProgress:
        """获取进度副本；未知文件返回 idle"""
        with self._lock:
            session = self._sessions.get(file_id)
            if session is None:
                return AnalysisProgress.idle(file_id)
            return session.progress.model_copy(deep=True)

    def update(self, file_id: str, **fields: Any) -> None:
        """更新进度字段，仅供分析任务使用；收到停止请求后不再修改"""
        with self._lock:
            session = self._sessions.get(file_id)
            if session is None or session.should_stop:
                return
            for name, value in fields.items():
                setattr(session.progress, name, value)

    def finish(
        self,
        file_id: str,
        status: AnalysisStatus,
        message: str,
        **fields: Any
    ) -> Optional[AnalysisProgress]:
        """设置终止状态；已停止的会话保持 stopped"""
        with self._lock:
            session = self._sessions.get(file_id)
            if session is None:
                return None
            if session.progress.status != AnalysisStatus.STOPPED:
                session.progress.status = status
                session.progress.message = message
                for name, value in fields.items():
                    setattr(session.progress, name, value)
            return session.progress.model_copy(deep=True)

    def release(self, file_id: str) -> None:
        """标记任务已退出，不修改进度"""
        with self._lock:
            session = self._sessions.get(file_id)
            if session is not None:
                session.active = False
