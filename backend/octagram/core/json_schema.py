from __future__ import annotations


# 回复工具的 LLM 输出结构：只约束 replies 为数组，元素清洗与数量判断在解析器中完成
REPLIES_SCHEMA = {
    "type": "object",
    "required": ["replies"],
    "properties": {
        "replies": {"type": "array"},
    },
}
