from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from octagram.core.tone import CREATIVITY_MAX, CREATIVITY_MIN, FORMALITY_MAX, FORMALITY_MIN
from octagram.services.prompt_strategy import REPLY_INTENTS, REPLY_LENGTHS, REWRITE_GOALS


RunType = Literal["translate", "rewrite", "reply"]
RUN_TYPES: tuple[str, ...] = ("translate", "rewrite", "reply")

MAX_TEXT_CHARS = 5000
MAX_CONTEXT_CHARS = 8000
MAX_COLLECTION_NAME = 60


def _is_int_in_range(value: Any, low: int, high: int) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return isinstance(value, int) and low <= value <= high


def _required_text(value: Any, field: str, max_chars: int) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field} is required")
    if len(value) > max_chars:
        raise ValueError(f"{field} must be {max_chars} characters or less")
    return value


def _formality(value: Any) -> int:
    if not _is_int_in_range(value, FORMALITY_MIN, FORMALITY_MAX):
        raise ValueError(f"Formality must be an integer from {FORMALITY_MIN} to {FORMALITY_MAX}")
    return int(value)


def _creativity(value: Any) -> int:
    if not _is_int_in_range(value, CREATIVITY_MIN, CREATIVITY_MAX):
        raise ValueError(f"Creativity must be an integer from {CREATIVITY_MIN} to {CREATIVITY_MAX}")
    return int(value)


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, validate_default=True)


# ---- 写作工具 ----


class TranslateRequest(CamelModel):
    text: Any = None
    formality: Any = None
    creativity: Any = None

    @field_validator("text", mode="before")
    @classmethod
    def _check_text(cls, value: Any) -> str:
        return _required_text(value, "Text", MAX_TEXT_CHARS)

    @field_validator("formality", mode="before")
    @classmethod
    def _check_formality(cls, value: Any) -> int:
        return _formality(value)

    @field_validator("creativity", mode="before")
    @classmethod
    def _check_creativity(cls, value: Any) -> int:
        return _creativity(value)


class RewriteRequest(TranslateRequest):
    goal_preset: Any = Field(default=None, alias="goalPreset")

    @field_validator("goal_preset", mode="before")
    @classmethod
    def _check_goal(cls, value: Any) -> str:
        if not value or not isinstance(value, str):
            raise ValueError("goalPreset is required")
        if value not in REWRITE_GOALS:
            raise ValueError(f"goalPreset must be one of: {', '.join(REWRITE_GOALS)}")
        return value


class ReplyRequest(CamelModel):
    conversation_context: Any = Field(default=None, alias="conversationContext")
    intent: Any = None
    length: Any = None
    formality: Any = None
    what_i_want_to_say: Any = Field(default=None, alias="whatIWantToSay")

    @field_validator("conversation_context", mode="before")
    @classmethod
    def _check_context(cls, value: Any) -> str:
        return _required_text(value, "conversationContext", MAX_CONTEXT_CHARS)

    @field_validator("intent", mode="before")
    @classmethod
    def _check_intent(cls, value: Any) -> str:
        if value not in REPLY_INTENTS:
            raise ValueError(f"intent must be one of: {', '.join(REPLY_INTENTS)}")
        return value

    @field_validator("length", mode="before")
    @classmethod
    def _check_length(cls, value: Any) -> str:
        if value not in REPLY_LENGTHS:
            raise ValueError(f"length must be one of: {', '.join(REPLY_LENGTHS)}")
        return value

    @field_validator("formality", mode="before")
    @classmethod
    def _check_formality(cls, value: Any) -> int:
        return _formality(value)

    @field_validator("what_i_want_to_say", mode="before")
    @classmethod
    def _check_extra(cls, value: Any) -> Optional[str]:
        if value and not isinstance(value, str):
            raise ValueError("whatIWantToSay must be a string")
        return value or None


class TranslateResponse(CamelModel):
    translation: str
    run_id: Optional[str] = Field(default=None, alias="runId")


class RewriteResponse(CamelModel):
    output: str
    run_id: Optional[str] = Field(default=None, alias="runId")


class ReplyResponse(CamelModel):
    replies: List[str]
    run_id: Optional[str] = Field(default=None, alias="runId")


class ToolOptions(BaseModel):
    formality: List[Dict[str, Any]]
    creativity: List[Dict[str, Any]]
    goals: List[str]
    intents: List[str]
    lengths: List[str]


# ---- 用量 ----


class UsageTodayResponse(CamelModel):
    day: str
    token_total: int = Field(alias="tokenTotal")
    budget: int
    remaining: int


# ---- 历史 / 收藏 ----


class RunOut(BaseModel):
    id: str
    type: str
    source: str
    input_text: str
    output_text: Optional[str] = None
    output_json: Optional[Dict[str, Any]] = None
    params: Dict[str, Any] = Field(default_factory=dict)
    model: Optional[str] = None
    token_total: Optional[int] = None
    latency_ms: Optional[int] = None
    created_at: Optional[str] = None


class HistoryResponse(BaseModel):
    items: List[RunOut] = Field(default_factory=list)


class CollectionCreate(CamelModel):
    name: Any = None

    @field_validator("name", mode="before")
    @classmethod
    def _check_name(cls, value: Any) -> str:
        name = (value if isinstance(value, str) else "").strip()
        if not name:
            raise ValueError("name is required")
        if len(name) > MAX_COLLECTION_NAME:
            raise ValueError(f"name must be {MAX_COLLECTION_NAME} characters or less")
        return name


class CollectionOut(CamelModel):
    id: str
    name: str
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    item_count: Optional[int] = Field(default=None, alias="itemCount")


class CollectionListResponse(BaseModel):
    items: List[CollectionOut] = Field(default_factory=list)


class CollectionCreateResponse(BaseModel):
    item: CollectionOut


class CollectionItemOut(BaseModel):
    id: str
    run_id: Optional[str] = None
    type: str
    source: str
    input_text: str
    output_text: Optional[str] = None
    output_json: Optional[Dict[str, Any]] = None
    params: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[str] = None


class CollectionDetailResponse(BaseModel):
    collection: CollectionOut
    items: List[CollectionItemOut] = Field(default_factory=list)


class CollectionItemCreate(CamelModel):
    run_id: Optional[str] = Field(default=None, alias="runId")
    type: Optional[str] = None
    source: Optional[str] = None
    input_text: Optional[str] = Field(default=None, alias="inputText")
    output_text: Any = Field(default=None, alias="outputText")
    output_json: Any = Field(default=None, alias="outputJson")
    params: Any = None


class CollectionItemDelete(CamelModel):
    item_id: Optional[str] = Field(default=None, alias="itemId")


class CreatedResponse(BaseModel):
    id: str


class OkResponse(BaseModel):
    ok: bool = True
    redirect: Optional[str] = None


# ---- 个人资料 / 账号 ----


class ProfileOut(CamelModel):
    id: str
    display_name: Optional[str] = Field(default=None, alias="displayName")
    avatar_url: Optional[str] = Field(default=None, alias="avatarUrl")
    timezone: Optional[str] = None
    locale: Optional[str] = None
    bio: Optional[str] = None
    website: Optional[str] = None
    username: Optional[str] = None
    public_profile: bool = Field(default=False, alias="publicProfile")
    theme: Literal["light", "dark"] = "light"
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")


class ProfileResponse(BaseModel):
    profile: ProfileOut


class ProfileUpdate(CamelModel):
    display_name: Any = Field(default=None, alias="displayName")
    avatar_url: Any = Field(default=None, alias="avatarUrl")
    timezone: Any = None
    locale: Any = None
    bio: Any = None
    website: Any = None
    username: Any = None
    public_profile: Any = Field(default=None, alias="publicProfile")
    theme: Any = None


class DeleteAccountRequest(CamelModel):
    password: Any = None
    confirm: Any = None
