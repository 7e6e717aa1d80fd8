from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    redis_url: str = "redis://localhost:6379"
    key_prefix: str = "foundermatch"
    anthropic_api_key: str = ""

    # LLM provider: "claude", "ollama", or "none"
    llm_provider: str = "claude"
    claude_model: str = "claude-sonnet-4-5-20250929"
    ollama_model: str = "llama3.2"
    ollama_url: str = "http://localhost:11434"
    max_output_tokens: int = 1024
    model_timeout_seconds: float = 20.0

    # Matching fan-out: candidates per run and model calls in flight
    match_candidate_limit: int = 5
    match_concurrency: int = 1

    # Canned assistant texts: "zh" or "en"
    locale: str = "zh"
    session_cookie: str = "user_id"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
