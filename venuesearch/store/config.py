from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class StoreConfig:
    backend: str = os.getenv("STORE_BACKEND", "mongo")  # "mongo" or "memory"
    mongodb_uri: str = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    database: str = os.getenv("MONGODB_DATABASE", "bookmarks")
    businesses_collection: str = "businesses"
    vector_index: str = os.getenv("MONGODB_VECTOR_INDEX", "default")
    embedding_path: str = "embedding"
    data_path: Path = Path(
        os.getenv(
            "BUSINESSES_JSON",
            str(Path(__file__).resolve().parent.parent / "data" / "businesses.json"),
        )
    )


DEFAULT_STORE_CONFIG = StoreConfig()
