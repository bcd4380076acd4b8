"""大模型补全服务"""

import asyncio
import logging
from typing import Optional

import openai
from src.config.settings import Settings, get_settings
from src.utils.exceptions import ExternalServiceError
from src.utils.performance import monitor_performance

logger = logging.getLogger(__name__)


EXAMPLES_PROMPT = """你是一个专业的教育内容分析助手。请分析以下文本，识别出其中的例题（带有完整答案或解析的题目）。

对于每道例题，请提取：
1. 题目内容
2. 答案或解析
3. 涉及的知识点
4. 所属章节（如果能识别）

请以 JSON 格式返回结果：
{
  "examples": [
    {
      "question": "题目内容",
      "answer": "答案内容",
      "analysis": "详细解析",
      "knowledge_points": ["知识点1", "知识点2"],
      "chapter": "章节名称",
      "section": "小节名称"
    }
  ]
}"""

EXERCISES_PROMPT = """你是一个专业的教育内容分析助手。请分析以下文本，识别出其中的课后习题（没有答案的练习题）。

参考以下知识点和例题上下文来解答这些题目。

对于每道习题，请提取并生成：
1. 题目内容
2. 详细答案（根据知识点和例题推理）
3. 解题思路分析
4. 涉及的知识点
5. 所属章节（如果能识别）

请以 JSON 格式返回结果：
{
  "exercises": [
    {
      "question": "题目内容",
      "answer": "生成的答案",
      "analysis": "详细解析",
      "knowledge_points": ["知识点1", "知识点2"],
      "chapter": "章节名称",
      "section": "小节名称"
    }
  ]
}"""

ANSWER_PROMPT = """你是一个专业的教育内容分析助手。请根据提供的知识点和上下文，为给定的题目生成详细的答案和解析。

请以 JSON 格式返回结果：
{
  "answer": "简洁的答案",
  "analysis": "详细的解题步骤和思路分析",
  "knowledge_points": ["涉及的知识点"]
}"""

STRUCTURE_PROMPT = """你是一个专业的教育内容分析助手。请分析以下文本，识别出章节结构和主要知识点。

请以 JSON 格式返回结果：
{
  "chapters": [
    {
      "name": "章节名称",
      "sections": [
        {
          "name": "小节名称",
          "knowledge_points": ["知识点1", "知识点2"]
        }
      ]
    }
  ]
}"""


class CompletionService:
    """基于 OpenAI 兼容接口的补全服务"""

    def __init__(
        self,
        api_key: str,
        base_url: str,
        model_name: str,
        timeout: float = 120,
        temperature: float = 0.7,
        max_tokens: int = 4096,
        client: Optional[openai.AsyncOpenAI] = None
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.model_name = model_name
        self.timeout = timeout
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = client
        self._client_lock = asyncio.Lock()

    async def initialize(self):
        """初始化模型客户端"""
        if self.client is None:
            async with self._client_lock:
                if self.client is None:
                    self.client = openai.AsyncOpenAI(
                        api_key=self.api_key,
                        base_url=self.base_url
                    )
                    logger.info(f"模型客户端初始化完成: {self.model_name}")

    @monitor_performance("completion_chat")
    async def chat(self, system_prompt: str, user_prompt: str) -> str:
        """发送聊天请求，返回模型文本"""
        await self.initialize()

        try:
            response = await self.client.chat.completions.create(
                model=self.model_name,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt}
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout=self.timeout
            )
        except openai.OpenAIError as e:
            logger.error(f"模型API调用失败: {str(e)}")
            raise ExternalServiceError(f"模型API调用失败: {str(e)}") from e

        if not response.choices:
            raise ExternalServiceError("API 返回空响应")

        content = response.choices[0].message.content
        if content is None:
            raise ExternalServiceError("API 返回空内容")
        return content.strip()

    async def analyze_examples(self, text: str) -> str:
        """分析文本中的例题"""
        return await self.chat(
            EXAMPLES_PROMPT,
            f"请分析以下文本中的例题：\n\n{text}"
        )

    async def analyze_exercises(self, text: str, context: str) -> str:
        """分析文本中的课后习题，并结合上下文给出答案"""
        return await self.chat(
            EXERCISES_PROMPT,
            f"参考上下文：\n{context}\n\n请分析以下文本中的课后习题并给出答案：\n\n{text}"
        )

    async def generate_answer(self, question: str, context: str) -> str:
        """为单道题目生成答案"""
        return await self.chat(
            ANSWER_PROMPT,
            f"参考知识点和上下文：\n{context}\n\n请为以下题目生成答案：\n\n{question}"
        )

    async def extract_structure(self, text: str) -> str:
        """提取章节结构"""
        return await self.chat(
            STRUCTURE_PROMPT,
            f"请分析以下文本的章节结构：\n\n{text}"
        )


def create_completion_service(settings: Optional[Settings] = None) -> Optional[CompletionService]:
    """根据配置创建补全服务；未配置分析模型时返回 None"""
    settings = settings or get_settings()
    if not settings.analysis_api_key:
        logger.warning("未配置分析模型，分析时只建立知识索引")
        return None

    return CompletionService(
        api_key=settings.analysis_api_key,
        base_url=settings.analysis_base_url,
        model_name=settings.analysis_model_name,
        timeout=settings.request_timeout,
        temperature=settings.temperature,
        max_tokens=settings.max_tokens
    )
