"""
config/settings.py — Canonical configuration contract for eks-smoke-test.

Uses pydantic-settings to load, validate, and type-check all environment
variables the smoke test reads (kubeconfig selection, profile path, worker
count, report path, output switches).

Two usage modes:
  Production / CLI:
      cfg = load_settings()              # reads from .env + os.environ
      cfg = load_settings("env/prod.env") # override env file path

  Tests:
      cfg = Settings(KUBE_CONTEXT="staging", SMOKE_MAX_WORKERS=4)
      # only the kwargs given; a shell KUBE_CONTEXT is ignored
"""
from __future__ import annotations

import os
import re
from typing import Literal, Optional

from pydantic import field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


class Settings(BaseSettings):
    # A KUBECONFIG or KUBE_CONTEXT exported in the developer shell must not
    # leak into Settings(...) built by tests. Only load_settings() looks at
    # the .env file and os.environ.
    model_config = SettingsConfigDict(
        env_file=None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # kwargs only; the smoke.run CLI goes through load_settings().
        return (init_settings,)

    # -------------------------------------------------------------------------
    # Cluster connection (handed to the kubernetes client loader)
    # -------------------------------------------------------------------------
    KUBECONFIG: Optional[str] = None
    KUBE_CONTEXT: Optional[str] = None
    SMOKE_REQUEST_TIMEOUT_SECONDS: int = 10

    # -------------------------------------------------------------------------
    # Deployment profile
    # -------------------------------------------------------------------------
    SMOKE_PROFILE: Optional[str] = None

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------
    SMOKE_MAX_WORKERS: int = 1

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------
    SMOKE_REPORT_PATH: Optional[str] = None
    SMOKE_COLOR: bool = True
    SMOKE_LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"

    # -------------------------------------------------------------------------
    # Convenience properties
    # -------------------------------------------------------------------------

    @property
    def parallel(self) -> bool:
        return self.SMOKE_MAX_WORKERS > 1

    @property
    def kubeconfig_path(self) -> Optional[str]:
        """KUBECONFIG with ~ expanded; None defers to the client's default rules."""
        if not self.KUBECONFIG:
            return None
        return os.path.expanduser(self.KUBECONFIG)

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------

    @field_validator(
        "KUBECONFIG", "KUBE_CONTEXT", "SMOKE_PROFILE", "SMOKE_REPORT_PATH", mode="before"
    )
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """An empty KUBE_CONTEXT= line means "use the current context", not ""."""
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("SMOKE_LOG_LEVEL", mode="before")
    @classmethod
    def normalise_log_level(cls, v: str) -> str:
        return str(v).strip().upper()

    @model_validator(mode="after")
    def validate_limits(self) -> Settings:
        if self.SMOKE_MAX_WORKERS < 1:
            raise ValueError("SMOKE_MAX_WORKERS must be >= 1")
        if self.SMOKE_REQUEST_TIMEOUT_SECONDS < 1:
            raise ValueError("SMOKE_REQUEST_TIMEOUT_SECONDS must be >= 1")
        return self


def load_settings(env_file: str = ".env") -> Settings:
    """Build Settings for the CLI from an env file plus os.environ.

    A variable exported in the shell (say SMOKE_MAX_WORKERS=4 for one run)
    overrides the same key in the env file. Keys that are not Settings
    fields, such as AWS_PROFILE in a shared .env, are dropped. A missing env
    file is not an error: a CI job may configure everything through its
    environment.

    Raises:
        ValidationError: if any value fails type or range validation.
    """
    file_vals: dict[str, str] = {}
    try:
        with open(env_file, encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                k, _, v = line.partition("=")
                k = k.strip()
                # "SMOKE_MAX_WORKERS=4   # groups in parallel" → "4"
                v = re.sub(r"\s+#.*$", "", v.strip())
                if k:
                    file_vals[k] = v
    except FileNotFoundError:
        pass
    merged = {**file_vals, **os.environ}
    known = {k: v for k, v in merged.items() if k in Settings.model_fields}
    return Settings(**known)
