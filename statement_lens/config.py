import os
from dataclasses import dataclass
from dotenv import load_dotenv


SUPPORTED_PROVIDERS = ("openai", "deepseek", "azure")
DEFAULT_BASE_URLS = {
    "openai": "https://api.openai.com",
    "deepseek": "https://api.deepseek.com",
    "azure": "",
}
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024


@dataclass
class AppConfig:
    llm_provider: str
    llm_model_name: str
    llm_api_key: str
    llm_base_url: str
    llm_api_version: str
    llm_timeout_seconds: int
    llm_max_retries: int
    max_upload_bytes: int
    output_dir: str
    debug: bool


def load_config() -> AppConfig:
    load_dotenv()
    provider = os.getenv("LLM_PROVIDER", "openai").strip().lower()
    if provider not in SUPPORTED_PROVIDERS:
        provider = "openai"

    max_upload_bytes = _int_env("MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES)
    if max_upload_bytes <= 0:
        max_upload_bytes = DEFAULT_MAX_UPLOAD_BYTES

    return AppConfig(
        llm_provider=provider,
        llm_model_name=os.getenv("LLM_MODEL_NAME", "gpt-4o-mini"),
        llm_api_key=os.getenv("LLM_API_KEY", ""),
        llm_base_url=os.getenv("LLM_BASE_URL") or DEFAULT_BASE_URLS[provider],
        llm_api_version=os.getenv("LLM_API_VERSION", "2024-10-21"),
        llm_timeout_seconds=max(1, _int_env("LLM_TIMEOUT_SECONDS", 90)),
        llm_max_retries=max(0, min(_int_env("LLM_MAX_RETRIES", 0), 5)),
        max_upload_bytes=max_upload_bytes,
        output_dir=os.getenv("OUTPUT_DIR", "outputs"),
        debug=os.getenv("DEBUG", "false").lower() == "true",
    )


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default
