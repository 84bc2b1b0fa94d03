from __future__ import annotations

import os

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


# 应用配置：统一管理环境变量与默认值
class Settings(BaseSettings):
    # 运行环境标识（便于日志、调试、区分开发/生产）
    app_env: str = "dev"
    # 日志级别
    log_level: str = "INFO"
    # FastAPI 根路径（反向代理或子路径部署时使用）
    root_path: str = ""
    # API 前缀（兼容多版本路由或网关转发）
    api_prefix: str | None = None
    # 项目运行时数据根目录（本地 SQLite 等）
    data_dir: str = "data"
    # SQLite 数据库文件路径（默认本地文件）
    sqlite_path: str = "data/octagram.db"
    # 可选数据库连接串（生产环境指向 Supabase PostgreSQL）
    database_url: str | None = None

    # Celery Broker（任务队列）连接地址
    celery_broker_url: str = "redis://localhost:6379/0"
    # Celery 结果存储地址
    celery_result_backend: str = "redis://localhost:6379/1"

    # OpenAI 兼容接口 Key（兼容 OPENAI_API_KEY）
    llm_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("llm_api_key", "openai_api_key"),
    )
    # OpenAI 兼容接口地址（可替换为代理/自部署服务）
    llm_base_url: str = "https://api.openai.com/v1"
    # 三个写作工具共用的模型名
    llm_model: str = "gpt-4o-mini"
    # LLM 请求超时时间（秒）
    llm_timeout_seconds: int = 60

    # 每个账号每个 UTC 日的 token 上限
    daily_token_budget: int = 2000
    # 历史记录保留天数（收藏内容不受影响）
    history_retention_days: int = 30

    # 允许跨域访问的前端地址列表（逗号分隔）
    cors_origins: str = "http://localhost:3000"

    # Supabase 项目地址
    supabase_url: str = ""
    # Supabase 匿名访问 Key（调用 Auth REST 接口时作为 apikey）
    supabase_anon_key: str | None = None
    # Supabase Service Role Key（删除账号时使用，拥有最高权限）
    supabase_service_role_key: str | None = None
    # Supabase JWKS 地址（用于后端 JWT 验证，留空则由 supabase_url 推导）
    supabase_jwks_url: str | None = None
    # Supabase JWT Secret（对称签名时使用，可与 JWKS 二选一）
    supabase_jwt_secret: str | None = None
    # JWT 验证时的 audience（Supabase 默认是 authenticated）
    supabase_jwt_audience: str = "authenticated"
    # JWT 验证时的 issuer（留空则由 supabase_url 推导）
    supabase_jwt_issuer: str | None = None

    class Config:
        env_file = (
            os.getenv("APP_ENV_FILE") or "config/.env",
            "backend/config/.env",
            ".env",
        )
        case_sensitive = False
        extra = "ignore" if os.getenv("APP_ENV", "dev").lower() == "dev" else "forbid"

    @property
    def cors_origin_list(self) -> list[str]:
        return [item.strip() for item in self.cors_origins.split(",") if item.strip()]

    # Supabase Auth REST 根地址，JWKS 与 issuer 均由此推导
    @property
    def supabase_auth_url(self) -> str | None:
        if not self.supabase_url:
            return None
        return f"{self.supabase_url.rstrip('/')}/auth/v1"

    @property
    def resolved_supabase_jwks_url(self) -> str | None:
        base = self.supabase_auth_url
        return self.supabase_jwks_url or (f"{base}/.well-known/jwks.json" if base else None)

    @property
    def resolved_supabase_jwt_issuer(self) -> str | None:
        return self.supabase_jwt_issuer or self.supabase_auth_url

    # 确保运行时数据目录存在
    def ensure_dirs(self) -> None:
        for path in (self.data_dir, os.path.dirname(self.sqlite_path)):
            if path:
                os.makedirs(path, exist_ok=True)


# 全局配置实例
settings = Settings()
