"""题库分析异常定义"""


class QuestionBankError(Exception):
    """所有业务异常的基类"""


class NotFoundError(QuestionBankError):
    """资源不存在"""


class DocumentNotFoundError(NotFoundError):
    """文件不存在"""

    def __init__(self, file_id: str):
        self.file_id = file_id
        super().__init__(f"文件不存在: {file_id}")


class QuestionNotFoundError(NotFoundError):
    """题目不存在"""

    def __init__(self, file_id: str, question_id: str):
        self.file_id = file_id
        self.question_id = question_id
        super().__init__(f"题目不存在: {question_id}")


class DataValidationError(QuestionBankError):
    """持久化数据格式错误"""


class ResponseParseError(QuestionBankError):
    """模型输出无法解析为预期的JSON结构"""


class ExternalServiceError(QuestionBankError):
    """外部服务（页面文本、模型接口）调用失败"""


class PersistenceError(QuestionBankError):
    """索引或结果写入失败"""


class AnalysisCancelledError(QuestionBankError):
    """分析已被请求停止"""

    def __init__(self, file_id: str):
        self.file_id = file_id
        super().__init__(f"分析已停止: {file_id}")


class AnalysisAlreadyRunningError(QuestionBankError):
    """同一文件已有分析任务在运行"""

    def __init__(self, file_id: str):
        self.file_id = file_id
        super().__init__(f"文件正在分析中: {file_id}")
