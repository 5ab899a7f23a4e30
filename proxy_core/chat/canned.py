"""本地预置回复。

在以下情况下不调用模型，直接使用这里的文案：
- 用户只是简单确认（okay / sure ...）；
- 消息看起来没说完；
- 两个远程 Provider 都失败（本地兜底）。

随机选择使用可注入的 rng，测试时传入固定种子的 random.Random。
"""

import random
from typing import List, Optional, Sequence

from proxy_core.domain.models import ChatTurn, ClassificationFlags


LANGUAGE = "Tangkhul"

WELCOME_REPLY = f"Welcome to {LANGUAGE} AI Trainer. How are you doing today?"
ACKNOWLEDGEMENT_REPLY = f"Great! Let's keep going. How would you say 'thank you' in {LANGUAGE}?"
GENERIC_FALLBACK_REPLY = (
    f"Thank you for sharing that. Could you tell me more about how you would express this concept in {LANGUAGE}?"
)

GREETING_PROMPTS = (
    f"Nice to meet you! How would you say 'hello' in {LANGUAGE}?",
    f"Hello there! What's the {LANGUAGE} word for 'greeting'?",
    f"Hi! I'd love to know how to say 'good morning' in {LANGUAGE}.",
    f"Hello! How do people greet each other in {LANGUAGE}?",
    f"Hi there! Could you teach me how to say 'welcome' in {LANGUAGE}?",
)

GENERAL_PROMPTS = (
    f"What do you call 'water' in {LANGUAGE}?",
    f"How would you say 'food' in {LANGUAGE} language?",
    f"What's the {LANGUAGE} word for 'friend'?",
    f"How do you say 'thank you' in {LANGUAGE}?",
    f"What do you call 'home' or 'house' in {LANGUAGE}?",
    f"How would you translate 'village' to {LANGUAGE}?",
    f"What's the {LANGUAGE} term for 'family'?",
    f"How do you say 'tree' in {LANGUAGE}?",
    f"What do people call the 'sun' in {LANGUAGE}?",
    f"How would you say 'beautiful' in {LANGUAGE}?",
    f"What's the {LANGUAGE} word for 'love'?",
    f"How do you say 'goodbye' in {LANGUAGE}?",
)

ENGLISH_GLOSS_PROMPTS = (
    "Thank you! What does that mean in English?",
    "That's wonderful. Could you tell me the English meaning of that phrase?",
    f"Thanks for sharing some {LANGUAGE}! How would you translate that into English?",
)

GREETING_CLARIFICATIONS = (
    f"Could you please share the complete greeting in {LANGUAGE} language?",
    f"I'd love to hear how people greet each other in {LANGUAGE}. Could you share the complete phrase?",
    f"What greeting words or phrases do people use in {LANGUAGE}? Could you share the full expression?",
)

WE_USE_CLARIFICATIONS = (
    f"What exactly do you use in {LANGUAGE}? Could you complete your thought?",
    f"What phrase or word do you use? I'd love to learn the complete {LANGUAGE} expression.",
    f"Could you share the complete expression that you use in {LANGUAGE}?",
)

GENERIC_CLARIFICATIONS = (
    "Could you please complete your thought? I'm interested in learning the full phrase.",
    "I think your message might be incomplete. Could you share the complete thought or phrase?",
    "I'd like to hear more about what you were going to say. Could you share the complete phrase or thought?",
)


def _pick(options: Sequence[str], rng: Optional[random.Random]) -> str:
    return (rng or random).choice(options)


def translation_prompt(category: str = "general", rng: Optional[random.Random] = None) -> str:
    prompts = GREETING_PROMPTS if category == "greeting" else GENERAL_PROMPTS
    return _pick(prompts, rng)


def english_gloss_request(rng: Optional[random.Random] = None) -> str:
    return _pick(ENGLISH_GLOSS_PROMPTS, rng)


def clarification_response(user_message: str, history: List[ChatTurn], rng: Optional[random.Random] = None) -> str:
    """根据上一条 assistant 消息的话题，请用户把没说完的话补全。"""

    last_assistant = next((t.content for t in reversed(history) if t.role == "assistant"), "")
    topic = last_assistant.lower()
    if "greet" in topic or "hello" in topic:
        return _pick(GREETING_CLARIFICATIONS, rng)
    if user_message.lower().strip().startswith("we use"):
        return _pick(WE_USE_CLARIFICATIONS, rng)
    return _pick(GENERIC_CLARIFICATIONS, rng)


def local_reply(
    flags: ClassificationFlags,
    user_message: str,
    history: List[ChatTurn],
    rng: Optional[random.Random] = None,
) -> str:
    """所有远程 Provider 都失败时的兜底回复，永远返回非空文本。"""

    if flags.contains_target_language_markers:
        return english_gloss_request(rng)
    if flags.is_likely_incomplete:
        return clarification_response(user_message, history, rng)
    if flags.is_greeting:
        return translation_prompt("greeting", rng)
    return translation_prompt("general", rng)
