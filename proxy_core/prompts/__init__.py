"""系统提示词加载工具。

当前仅支持语料采集场景，按语言(locale) 从 prompts/<locale> 目录
读取对应的 system prompt 文本，用于构造 ChatTurn(role="system").
"""

from functools import lru_cache
from pathlib import Path


PROMPTS_DIR = Path(__file__).resolve().parent

PROMPT_FILES = {
    "elicitation": "elicitation_system.md",
}


@lru_cache(maxsize=None)
def load_system_prompt(agent_type: str = "elicitation", locale: str = "en") -> str:
    """根据 Agent 类型和语言加载系统提示词文本。"""

    fname = PROMPTS_DIR / locale / PROMPT_FILES[agent_type]
    return fname.read_text(encoding="utf-8").strip()
