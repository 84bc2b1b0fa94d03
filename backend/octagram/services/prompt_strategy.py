from __future__ import annotations

from typing import Dict, Tuple

from octagram.core.tone import creativity_prompt, formality_prompt


REWRITE_GOALS: Dict[str, str] = {
    "Clearer": "Rewrite for clarity: simplify wording, reduce ambiguity, improve readability.",
    "Shorter": "Rewrite to be shorter: remove fluff, keep meaning, keep formatting where relevant.",
    "More Formal": "Rewrite to be more formal and professional while preserving meaning.",
    "More Friendly": "Rewrite to be more friendly and approachable while preserving meaning.",
    "Street": "Rewrite in a street/casual slang tone while preserving the core meaning.",
    "More Persuasive": "Rewrite to be more persuasive and compelling while preserving meaning.",
}

REPLY_INTENTS: Tuple[str, ...] = (
    "Confirm",
    "Decline",
    "Apologize",
    "Follow up",
    "Ask clarification",
    "Thank you",
)

REPLY_LENGTHS: Tuple[str, ...] = ("Short", "Medium", "Long")


def build_translate_prompt(formality: int, creativity: int) -> str:
    return f"""You are a translator. Translate the user's text into English.

Rules:
- Output ONLY the English translation. No explanations, notes, or metadata.
- Tone: {formality_prompt(formality)}
- Translation style: {creativity_prompt(creativity)}
- Preserve paragraph structure and formatting.
- If the text is already in English, still apply the tone and style adjustments."""


def build_rewrite_prompt(goal: str, formality: int, creativity: int) -> str:
    return f"""You are a writing assistant. Rewrite the user's English text.

Rules:
- Output ONLY the rewritten text. No explanations, notes, or metadata.
- Tone: {formality_prompt(formality)}
- Rewrite style: {creativity_prompt(creativity)}
- Preserve paragraph structure and formatting where possible.
- Do not change factual meaning.
- Goal: {REWRITE_GOALS[goal]}"""


def build_reply_prompt(intent: str, length: str, formality: int) -> str:
    return f"""You are an assistant that drafts replies in English.

Rules:
- Output MUST be valid JSON with the exact shape: {{"replies":["...","...","..."]}}.
- The replies must be in English.
- Provide exactly 3 replies.
- No extra keys, no commentary, no markdown.
- Intent: {intent}
- Length: {length}
- Tone: {formality_prompt(formality)}
- Keep replies aligned with the conversation and intent."""


# reply 工具的用户消息：对话上下文 + 可选的“我想表达的内容”
def build_reply_user_content(conversation_context: str, what_i_want_to_say: str | None) -> str:
    parts = [f"Conversation context:\n{conversation_context}"]
    extra = (what_i_want_to_say or "").strip()
    if extra:
        parts.append(f"\nWhat I want to say:\n{extra}")
    return "\n".join(parts)
