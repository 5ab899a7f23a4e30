"""消息顺序校验。

下游 chat/completions 接口（尤其是 Perplexity）要求：除开头的 system
消息外，消息必须严格按 user/assistant/user/... 交替。历史记录被裁剪、
或前端重复提交时很容易打破这一约束，这里统一修复，所有 Provider
共用同一规则。
"""

from typing import List

from proxy_core.domain.models import ChatTurn


PLACEHOLDER_OPENING_USER = ChatTurn(role="user", content="Hi")
PLACEHOLDER_ASSISTANT = ChatTurn(role="assistant", content="How would you say 'hello' in Tangkhul?")
PLACEHOLDER_USER = ChatTurn(role="user", content="Let me share a Tangkhul phrase.")
PLACEHOLDER_TRAILING_USER = ChatTurn(role="user", content="I'd like to share a Tangkhul word.")


def validate_sequence(history: List[ChatTurn]) -> List[ChatTurn]:
    """返回满足交替约束的新列表，不修改入参。

    1. 找到第一条非 system 消息；不存在则原样返回（副本）。
    2. 若它不是 user，在该位置插入占位 user 消息。
    3. 向后扫描，相邻两条同角色时在中间插入缺失角色的占位消息。
    4. 若最后一条是 assistant，再追加一条占位 user 消息。

    开头的多条 system 消息合并为一条，夹在对话中间的 system 消息被丢弃。
    对已经合法的历史是幂等的。
    """

    if is_valid_sequence(history):
        return list(history)
    result = _collapse_system_turns(history)
    first = next((i for i, turn in enumerate(result) if turn.role != "system"), -1)
    if first == -1:
        return result

    if result[first].role != "user":
        result.insert(first, PLACEHOLDER_OPENING_USER)

    i = first
    while i < len(result) - 1:
        current, nxt = result[i].role, result[i + 1].role
        if current == "user" and nxt != "assistant":
            result.insert(i + 1, PLACEHOLDER_ASSISTANT)
            i += 1
        elif current == "assistant" and nxt != "user":
            result.insert(i + 1, PLACEHOLDER_USER)
            i += 1
        i += 1

    if result[-1].role == "assistant":
        result.append(PLACEHOLDER_TRAILING_USER)
    return result


def _collapse_system_turns(history: List[ChatTurn]) -> List[ChatTurn]:
    turns = list(history)
    start = 0
    while start < len(turns) and turns[start].role == "system":
        start += 1
    head = turns[:start]
    if len(head) > 1:
        head = [ChatTurn(role="system", content="\n\n".join(t.content for t in head))]
    return head + [t for t in turns[start:] if t.role != "system"]


def is_valid_sequence(history: List[ChatTurn]) -> bool:
    """判断历史是否已满足交替约束（最多一条开头的 system 消息）。"""

    turns = list(history)
    start = 0
    while start < len(turns) and turns[start].role == "system":
        start += 1
    if start > 1:
        return False
    rest = turns[start:]
    if not rest:
        return True
    if rest[0].role != "user" or rest[-1].role == "assistant":
        return False
    return all(a.role != b.role and "system" not in (a.role, b.role) for a, b in zip(rest, rest[1:]))


def trim_history(history: List[ChatTurn], max_turns: int) -> List[ChatTurn]:
    """保留开头的 system 消息与最近 max_turns 条非 system 消息。"""

    turns = list(history)
    start = 0
    while start < len(turns) and turns[start].role == "system":
        start += 1
    head, rest = turns[:start], turns[start:]
    if max_turns > 0 and len(rest) > max_turns:
        rest = rest[-max_turns:]
    return head + rest
