"""Provider 响应后处理。

部分模型（如 Perplexity 的 reasoning 系列）会在正文前输出 <think>...</think>
思考过程，这部分不能展示给训练员。
"""

import re

THINK_OPEN = "<think>"
THINK_CLOSE = "</think>"

_THINK_BLOCK_RE = re.compile(re.escape(THINK_OPEN) + r".*?" + re.escape(THINK_CLOSE), re.DOTALL)
_PARAGRAPH_RE = re.compile(r"([.!?])[ \t]+(?=[A-Z])")


def strip_thinking(text: str) -> str:
    """去掉所有完整的思考块；未闭合的 <think> 直接截断到其位置。"""

    stripped = _THINK_BLOCK_RE.sub("", text)
    dangling = stripped.find(THINK_OPEN)
    if dangling != -1:
        stripped = stripped[:dangling]
    return stripped.replace(THINK_CLOSE, "").strip()


def reflow_paragraphs(text: str) -> str:
    """句末标点后紧跟大写字母时插入空行，仅影响展示效果。"""

    return _PARAGRAPH_RE.sub(r"\1\n\n", text)


def sanitize_response(text: str, reflow: bool = True) -> str:
    """清理思考块；结果为空时返回原文，保证非空输入不会得到空输出。"""

    if not text:
        return text
    cleaned = strip_thinking(text)
    if not cleaned:
        return text
    if reflow:
        cleaned = reflow_paragraphs(cleaned)
    return cleaned
