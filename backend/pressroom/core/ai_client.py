"""
AI 远程函数客户端
单一入口按 action 分发：generateQuiz（根据正文出题）、organizeContent（整理排版并推荐标签）
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from pressroom.config import settings
from pressroom.core.quizzes import normalize_questions
from pressroom.core.text_metrics import html_to_text

logger = logging.getLogger(__name__)

# 可重试的 HTTP 状态码（服务端临时故障）
_RETRYABLE_STATUS_CODES = {500, 502, 503, 504, 429}
_BASE_DELAY = 2  # 秒，指数退避基数
# AI 生成的选项最多保留的单词数
_MAX_OPTION_WORDS = 6


@dataclass
class OrganizedContent:
    """整理后的正文"""
    rewritten_html: str
    suggested_tags: list[str] = field(default_factory=list)
    # False 表示调用失败，rewritten_html 即原文
    changed: bool = True


class AIFunctionClient:
    """AI 远程函数客户端，内置指数退避重试"""

    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        base_delay: float = _BASE_DELAY,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url if url is not None else settings.AI_FUNCTION_URL
        self.api_key = api_key if api_key is not None else settings.AI_FUNCTION_KEY
        self.timeout = timeout if timeout is not None else settings.AI_TIMEOUT_SECONDS
        # 总尝试次数，至少一次
        self.max_retries = max(1, max_retries if max_retries is not None else settings.AI_MAX_RETRIES)
        self.base_delay = base_delay
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.url)

    def _build_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def invoke(self, payload: dict) -> Any:
        """
        调用远程函数，返回解析后的 JSON

        Raises:
            ValueError: 未配置 AI_FUNCTION_URL
            httpx.HTTPError: 重试耗尽或不可重试的错误
        """
        if not self.configured:
            raise ValueError("未配置 AI_FUNCTION_URL，无法调用 AI 功能")

        action = payload.get("action")
        last_exc: Exception | None = None
        for attempt in range(1, self.max_retries + 1):
            try:
                async with httpx.AsyncClient(
                    timeout=self.timeout, trust_env=False, transport=self._transport
                ) as client:
                    response = await client.post(self.url, json=payload, headers=self._build_headers())
                    response.raise_for_status()
                    return response.json()
            except httpx.HTTPStatusError as e:
                last_exc = e
                status = e.response.status_code
                if status in _RETRYABLE_STATUS_CODES and attempt < self.max_retries:
                    delay = self.base_delay * (2 ** (attempt - 1))
                    logger.warning(
                        f"[{action}] 第{attempt}次请求失败 (HTTP {status})，{delay}s 后重试..."
                    )
                    await asyncio.sleep(delay)
                    continue
                logger.error(f"[{action}] 请求失败 (HTTP {status}): {e.response.text[:500]}")
                raise
            except (httpx.ConnectError, httpx.ReadTimeout) as e:
                last_exc = e
                if attempt < self.max_retries:
                    delay = self.base_delay * (2 ** (attempt - 1))
                    logger.warning(
                        f"[{action}] 第{attempt}次连接/超时异常 ({type(e).__name__})，{delay}s 后重试..."
                    )
                    await asyncio.sleep(delay)
                    continue
                logger.error(f"[{action}] 调用异常: {e}")
                raise
        raise last_exc  # type: ignore[misc]

    async def generate_quiz(self, html: str, num_questions: int = 5) -> list[dict]:
        """
        根据正文生成测验题（已规范化，空题干会被丢弃）

        正文没有可见文字时直接返回空列表，不发起请求
        """
        if not html_to_text(html):
            return []
        num_questions = max(1, min(num_questions, settings.QUIZ_MAX_QUESTIONS))
        data = await self.invoke({
            "action": "generateQuiz",
            "html": html,
            "numQuestions": num_questions,
        })
        raw = data.get("questions") if isinstance(data, dict) else data
        questions = normalize_questions(
            raw, drop_blank=True, max_option_words=_MAX_OPTION_WORDS
        )
        logger.info(f"AI 生成测验题 {len(questions)} 道")
        return questions

    async def organize_content(self, html: str, user_prompt: Optional[str] = None) -> OrganizedContent:
        """整理正文；任何失败都返回原文"""
        payload = {"action": "organizeContent", "html": html}
        if user_prompt:
            payload["userPrompt"] = user_prompt
        try:
            data = await self.invoke(payload)
            rewritten = data.get("rewrittenHtml") or data.get("rewritten_html")
            if not isinstance(rewritten, str) or not rewritten.strip():
                raise ValueError("AI 返回内容缺少 rewrittenHtml")
            tags = data.get("suggestedTags") or data.get("suggested_tags") or []
            tags = [str(t).strip() for t in tags if str(t).strip()] if isinstance(tags, list) else []
            return OrganizedContent(rewritten_html=rewritten, suggested_tags=tags)
        except Exception as e:
            logger.warning(f"AI 整理正文失败，返回原文: {e}")
            return OrganizedContent(rewritten_html=html, suggested_tags=[], changed=False)


# 全局单例
ai_client = AIFunctionClient()
