import os

from hookpilot.shared import (
    DEFAULT_JOB_DB_PATH,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_MAX_SKILLS,
    DEFAULT_MODEL_MAX_TOKENS,
    DEFAULT_SKILLS_DIR,
    DEFAULT_WORKSPACE_DIR,
    build_llm,
    env_flag,
    env_positive_int,
)


class Config:
    @staticmethod
    def get_model() -> str:
        return build_llm()

    @staticmethod
    def get_model_max_tokens() -> int:
        return env_positive_int("HOOKPILOT_MODEL_MAX_TOKENS", DEFAULT_MODEL_MAX_TOKENS)

    @staticmethod
    def get_max_iterations() -> int:
        return env_positive_int("HOOKPILOT_MAX_ITERATIONS", DEFAULT_MAX_ITERATIONS)

    @staticmethod
    def get_max_skills() -> int:
        return env_positive_int("HOOKPILOT_MAX_SKILLS", DEFAULT_MAX_SKILLS)

    @staticmethod
    def get_model_timeout_seconds() -> int:
        return env_positive_int("HOOKPILOT_MODEL_TIMEOUT_SECONDS", 120)

    @staticmethod
    def get_tool_timeout_seconds() -> int:
        return env_positive_int("HOOKPILOT_TOOL_TIMEOUT_SECONDS", 60)

    @staticmethod
    def get_job_ttl_seconds() -> int:
        return env_positive_int("HOOKPILOT_JOB_TTL_SECONDS", 24 * 60 * 60)

    @staticmethod
    def get_job_max_attempts() -> int:
        return env_positive_int("HOOKPILOT_JOB_MAX_ATTEMPTS", 3)

    @staticmethod
    def get_job_retry_delay_seconds() -> int:
        return env_positive_int("HOOKPILOT_JOB_RETRY_DELAY_SECONDS", 5)

    @staticmethod
    def get_job_sweep_interval_seconds() -> int:
        return env_positive_int("HOOKPILOT_JOB_SWEEP_INTERVAL_SECONDS", 300)

    @staticmethod
    def get_job_store_kind() -> str:
        kind = os.getenv("HOOKPILOT_JOB_STORE", "memory").strip().lower() or "memory"
        if kind not in {"memory", "sqlite"}:
            raise RuntimeError("Invalid HOOKPILOT_JOB_STORE: expected 'memory' or 'sqlite'.")
        return kind

    @staticmethod
    def get_job_db_path() -> str:
        return os.getenv("HOOKPILOT_JOB_DB_PATH", DEFAULT_JOB_DB_PATH)

    @staticmethod
    def get_skills_dir() -> str:
        return os.getenv("HOOKPILOT_SKILLS_DIR", "").strip() or DEFAULT_SKILLS_DIR

    @staticmethod
    def get_skills_manifest() -> str:
        return os.getenv("HOOKPILOT_SKILLS_MANIFEST", "").strip()

    @staticmethod
    def get_workspace_dir() -> str:
        return os.getenv("HOOKPILOT_WORKSPACE_DIR", "").strip() or DEFAULT_WORKSPACE_DIR

    @staticmethod
    def get_http_allowed_hosts() -> set[str]:
        raw = os.getenv("HOOKPILOT_HTTP_ALLOWED_HOSTS", "")
        return {host.strip().lower() for host in raw.split(",") if host.strip()}

    @staticmethod
    def get_webhook_secret() -> str:
        return os.getenv("GITHUB_WEBHOOK_SECRET", "").strip()

    @staticmethod
    def stream_enabled() -> bool:
        return env_flag("HOOKPILOT_STREAM_ENABLED", default=True)
