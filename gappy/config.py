from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import httpx
from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

_DATA_DIR = Path(__file__).resolve().parent / "data"


@dataclass(frozen=True)
class ClientConfig:
    base_url: str = os.getenv("GAPPY_API_BASE_URL", "http://localhost:8000")
    timeout: float = 15.0
    connect_timeout: float = 5.0


@dataclass(frozen=True)
class ServerConfig:
    account_token_secret: str = os.getenv(
        "ACCOUNT_TOKEN_SECRET", "dummy-account-token-secret-for-development-only",
    )
    account_token_ttl_ms: int = 1000 * 60 * 60 * 6  # 6 hours
    places_csv: Path = field(default=_DATA_DIR / "places.csv")


@dataclass(frozen=True)
class LLMConfig:
    api_key: str = os.getenv("GROQ_API_KEY", "")
    model: str = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")
    timeout: float = 10.0
    max_tokens: int = 1024
    temperature: float = 0.3
    enabled: bool = os.getenv("GAPPY_LLM_ENABLED", "1") != "0"


DEFAULT_CLIENT_CONFIG = ClientConfig()
DEFAULT_SERVER_CONFIG = ServerConfig()
DEFAULT_LLM_CONFIG = LLMConfig()


def build_http_client(config: ClientConfig = DEFAULT_CLIENT_CONFIG) -> httpx.AsyncClient:
    """Create the shared async client used by the orchestrator and sync queues."""
    timeout = httpx.Timeout(config.timeout, connect=config.connect_timeout)
    return httpx.AsyncClient(base_url=config.base_url, timeout=timeout)
