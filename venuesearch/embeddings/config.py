from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class EmbeddingConfig:
    model_name: str = os.getenv("EMBEDDING_MODEL", "sentence-transformers/all-MiniLM-L6-v2")
    dimension: int = 384
    cache_dir: Path = Path(os.getenv("EMBEDDING_CACHE_DIR", "cache/models"))
    # Simultaneous in-flight embedding computations during bulk regeneration
    max_concurrency: int = int(os.getenv("EMBEDDING_MAX_CONCURRENCY", "5"))


DEFAULT_EMBEDDING_CONFIG = EmbeddingConfig()
