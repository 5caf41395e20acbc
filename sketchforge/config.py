"""
Runtime settings resolved from the environment.
"""

import os
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, Field


DEFAULT_MODELS = {
    "openai": "gpt-4o",
    "anthropic": "claude-3-5-sonnet-latest",
}


class Settings(BaseModel):
    """Provider, retry and storage configuration for the pipeline."""
    provider: str = "openai"
    model_name: str = DEFAULT_MODELS["openai"]
    api_key: Optional[str] = None
    max_tokens: int = 4096
    synthesis_max_tokens: int = 16000
    synthesis_temperature: float = 0.3
    temperature_step: float = 0.2
    max_attempts: int = 3
    data_dir: Path = Path("outputs")
    max_upload_bytes: int = 5 * 1024 * 1024
    allowed_extensions: Tuple[str, ...] = (".jpg", ".jpeg", ".png", ".gif")
    import_workers: int = Field(default=2, ge=1)

    @classmethod
    def from_env(cls, **overrides) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            **overrides: Explicit values that take precedence over the environment.

        Returns:
            Settings instance.
        """
        load_dotenv()

        provider = (overrides.pop("provider", None) or os.getenv("SKETCHFORGE_PROVIDER", "openai")).lower()
        if provider not in DEFAULT_MODELS:
            raise ValueError(f"Unsupported provider: {provider}")

        api_key_var = "OPENAI_API_KEY" if provider == "openai" else "ANTHROPIC_API_KEY"
        values = {
            "provider": provider,
            "model_name": os.getenv("SKETCHFORGE_MODEL") or DEFAULT_MODELS[provider],
            "api_key": os.getenv(api_key_var),
            "max_tokens": int(os.getenv("SKETCHFORGE_MAX_TOKENS", "4096")),
            "synthesis_max_tokens": int(os.getenv("SKETCHFORGE_SYNTHESIS_MAX_TOKENS", "16000")),
            "synthesis_temperature": float(os.getenv("SKETCHFORGE_SYNTHESIS_TEMPERATURE", "0.3")),
            "temperature_step": float(os.getenv("SKETCHFORGE_TEMPERATURE_STEP", "0.2")),
            "max_attempts": int(os.getenv("SKETCHFORGE_MAX_ATTEMPTS", "3")),
            "data_dir": Path(os.getenv("SKETCHFORGE_DATA_DIR", "outputs")),
            "max_upload_bytes": int(os.getenv("SKETCHFORGE_MAX_UPLOAD_BYTES", str(5 * 1024 * 1024))),
            "import_workers": int(os.getenv("SKETCHFORGE_IMPORT_WORKERS", "2")),
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)
