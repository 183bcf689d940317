"""
正文度量工具
HTML 转纯文本、字数、阅读时长、slug 与摘要
"""

import math
import re

from bs4 import BeautifulSoup, Comment

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def html_to_text(content_html: str) -> str:
    """解析 HTML，去掉样式/脚本与注释，返回合并空白后的纯文本"""
    if not content_html:
        return ""
    soup = BeautifulSoup(content_html, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()
    # &nbsp; 解析为 \xa0，split() 会一并按空白切分
    return " ".join(soup.get_text(" ", strip=True).split())


def word_count(content_html: str) -> int:
    text = html_to_text(content_html)
    return len(text.split()) if text else 0


def reading_time(words: int, words_per_minute: int = 200) -> int:
    """阅读时长（分钟），向上取整，至少 1 分钟"""
    return max(1, math.ceil(words / words_per_minute))


def slugify(title: str) -> str:
    """
    由标题生成 slug：小写，非字母数字的连续字符折叠为一个 "-"，去掉首尾 "-"

    >>> slugify("Hello, World! 2024")
    'hello-world-2024'
    """
    return _SLUG_RE.sub("-", (title or "").lower()).strip("-")


def make_excerpt(content_html: str, max_length: int = 200) -> str:
    text = html_to_text(content_html)
    if len(text) > max_length:
        return text[:max_length] + "..."
    return text


def has_visible_content(content_html: str) -> bool:
    """有可见文字，或者至少有一张图片"""
    if not content_html:
        return False
    if html_to_text(content_html):
        return True
    return BeautifulSoup(content_html, "html.parser").find("img") is not None
