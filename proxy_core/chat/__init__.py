"""请求规范化与回复处理。

- extractor: 从不同形态的请求体中提取最新用户消息。
- heuristics: 确认语 / 问候 / 未完成句 / 目标语言字符的启发式判断。
- sequence: 修复 user/assistant 交替顺序。
- sanitizer: 去除思考块并整理段落。
- canned: 本地预置回复。
"""
