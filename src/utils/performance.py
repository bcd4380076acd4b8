"""性能监控工具

记录页面分析、模型调用、检索等操作的耗时，供 /system/performance 接口查询。
"""

import time
import inspect
import logging
from typing import Dict, Any, Optional, Callable
from functools import wraps
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from collections import defaultdict, deque
import threading

from src.config.settings import settings
from src.utils.logger import log_performance

logger = logging.getLogger(__name__)


@dataclass
class PerformanceMetrics:
    """单个操作的累计指标"""
    total_calls: int = 0
    total_time: float = 0.0
    min_time: float = float('inf')
    max_time: float = 0.0
    recent_times: deque = field(default_factory=lambda: deque(maxlen=100))
    error_count: int = 0
    slow_count: int = 0

    def add_measurement(self, duration: float, success: bool = True, slow: bool = False):
        self.total_calls += 1
        self.total_time += duration
        self.min_time = min(self.min_time, duration)
        self.max_time = max(self.max_time, duration)
        self.recent_times.append(duration)

        if not success:
            self.error_count += 1
        if slow:
            self.slow_count += 1

    def get_average_time(self) -> float:
        return self.total_time / self.total_calls if self.total_calls > 0 else 0.0

    def get_recent_average(self) -> float:
        if not self.recent_times:
            return 0.0
        return sum(self.recent_times) / len(self.recent_times)

    def get_error_rate(self) -> float:
        return self.error_count / self.total_calls if self.total_calls > 0 else 0.0

    def summary(self, detailed: bool = False) -> Dict[str, Any]:
        """导出为接口返回的字典"""
        data = {
            "total_calls": self.total_calls,
            "average_time": self.get_average_time(),
            "recent_average": self.get_recent_average(),
            "error_rate": self.get_error_rate(),
            "slow_count": self.slow_count,
        }
        if detailed:
            data.update(
                total_time=self.total_time,
                min_time=self.min_time if self.total_calls else 0.0,
                max_time=self.max_time,
                error_count=self.error_count,
            )
        return data


class PerformanceMonitor:
    """按操作名汇总耗时，线程安全"""

    def __init__(self, slow_threshold: float = 1.0):
        self.slow_threshold = slow_threshold
        self.metrics: Dict[str, PerformanceMetrics] = defaultdict(PerformanceMetrics)
        self._lock = threading.Lock()

    def record_operation(self, operation_name: str, duration: float, success: bool = True) -> bool:
        """记录一次操作，返回是否为慢操作"""
        slow = duration > self.slow_threshold
        with self._lock:
            self.metrics[operation_name].add_measurement(duration, success, slow)
        return slow

    def get_metrics(self, operation_name: Optional[str] = None) -> Dict[str, Any]:
        """获取性能指标；指定操作名时返回详细指标"""
        with self._lock:
            if operation_name:
                metrics = self.metrics.get(operation_name)
                if metrics is None:
                    return {}
                return {"operation": operation_name, **metrics.summary(detailed=True)}

            return {name: metrics.summary() for name, metrics in self.metrics.items()}

    def reset_metrics(self, operation_name: Optional[str] = None):
        with self._lock:
            if operation_name:
                self.metrics.pop(operation_name, None)
            else:
                self.metrics.clear()


# 全局性能监控器实例
performance_monitor = PerformanceMonitor(slow_threshold=settings.slow_operation_seconds)


def _finish_measurement(name: str, start_time: float, success: bool) -> None:
    duration = time.time() - start_time
    if performance_monitor.record_operation(name, duration, success):
        log_performance(name, duration, slow=True, success=success)


def monitor_performance(operation_name: Optional[str] = None):
    """性能监控装饰器，支持同步与异步函数"""
    def decorator(func: Callable):
        name = operation_name or f"{func.__module__}.{func.__name__}"

        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                start_time = time.time()
                success = True
                try:
                    return await func(*args, **kwargs)
                except Exception:
                    success = False
                    raise
                finally:
                    _finish_measurement(name, start_time, success)

            return async_wrapper

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            start_time = time.time()
            success = True
            try:
                return func(*args, **kwargs)
            except Exception:
                success = False
                raise
            finally:
                _finish_measurement(name, start_time, success)

        return sync_wrapper

    return decorator


@asynccontextmanager
async def measure_time(operation_name: str):
    """测量一段异步代码的耗时"""
    start_time = time.time()
    success = True
    try:
        yield
    except Exception:
        success = False
        raise
    finally:
        _finish_measurement(operation_name, start_time, success)
