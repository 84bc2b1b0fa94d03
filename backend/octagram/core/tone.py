from __future__ import annotations

from typing import Dict, Tuple


# 正式度（1-8）：label 供前端滑块展示，prompt 写入系统提示词
FORMALITY_LEVELS: Dict[int, Dict[str, str]] = {
    1: {
        "label": "Highly Literary",
        "prompt": "highly literary, using elevated, poetic, and classical language with sophisticated vocabulary",
    },
    2: {
        "label": "Literary",
        "prompt": "literary, using refined and elegant prose with careful word choices",
    },
    3: {"label": "Very formal", "prompt": "very formal, using professional and respectful language"},
    4: {"label": "Formal", "prompt": "formal, using polite and proper language"},
    5: {"label": "Friendly", "prompt": "friendly, using warm and approachable language"},
    6: {"label": "Very friendly", "prompt": "very friendly, using casual and relaxed language"},
    7: {"label": "Street", "prompt": "street, using informal slang and colloquial expressions"},
    8: {
        "label": "Very Street",
        "prompt": "very street, using heavy slang, urban vernacular, and raw informal speech",
    },
}

# 创意度（1-4）
CREATIVITY_LEVELS: Dict[int, Dict[str, str]] = {
    1: {"label": "Faithful", "prompt": "very literal and strictly faithful to the original"},
    2: {"label": "Natural", "prompt": "faithful but natural-sounding"},
    3: {"label": "Freer", "prompt": "a freer rewrite while preserving the core meaning"},
    4: {"label": "Creative", "prompt": "more creative while preserving the meaning and intent"},
}

FORMALITY_MIN, FORMALITY_MAX = 1, max(FORMALITY_LEVELS)
CREATIVITY_MIN, CREATIVITY_MAX = 1, max(CREATIVITY_LEVELS)


def formality_prompt(level: int) -> str:
    return FORMALITY_LEVELS[level]["prompt"]


def creativity_prompt(level: int) -> str:
    return CREATIVITY_LEVELS[level]["prompt"]


def list_formality_labels() -> Tuple[dict[str, object], ...]:
    return tuple({"value": key, "label": meta["label"]} for key, meta in FORMALITY_LEVELS.items())


def list_creativity_labels() -> Tuple[dict[str, object], ...]:
    return tuple({"value": key, "label": meta["label"]} for key, meta in CREATIVITY_LEVELS.items())
