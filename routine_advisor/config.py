from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

BASE_DIR = Path(__file__).resolve().parent


@dataclass(frozen=True)
class Settings:
    """Configuration container for the catalog, storage, and generation backends."""
    worker_url: str
    worker_timeout: Optional[float]
    gemini_api_key: str
    gemini_model: str
    catalog_source: str
    state_path: Path
    prompts_dir: Path


def load_settings() -> Settings:
    """Purpose: Load configuration from environment variables and defaults.
    Inputs/Outputs: No inputs; returns a Settings instance.
    Side Effects / State: Reads environment variables and filesystem paths.
    Dependencies: Uses os.getenv and BASE_DIR for default paths.
    Failure Modes: A non-numeric WORKER_TIMEOUT raises ValueError.
    If Removed: App cannot locate the catalog or pick a generation backend.
    Testing Notes: Verify defaults and overrides via environment variables.
    """
    # Resolve data and prompt paths, then build Settings.
    data_dir = (BASE_DIR / ".." / "data").resolve()
    catalog_source = os.getenv("CATALOG_SOURCE") or str(data_dir / "products.json")

    state_path = os.getenv("STATE_PATH")
    prompts_dir = os.getenv("PROMPTS_DIR")

    timeout_raw = os.getenv("WORKER_TIMEOUT", "").strip()

    return Settings(
        worker_url=os.getenv("WORKER_URL", "").strip(),
        worker_timeout=float(timeout_raw) if timeout_raw else None,
        gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        catalog_source=catalog_source,
        state_path=Path(state_path) if state_path else data_dir / "state.json",
        prompts_dir=Path(prompts_dir) if prompts_dir else (BASE_DIR / "prompts").resolve(),
    )
