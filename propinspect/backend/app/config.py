from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

SCORING_MODELS = ("flat_deduction", "weighted_average")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    database_url: str = "sqlite:///./propinspect.db"

    # ---- Document shape ----
    schema_version: str = "1.0"
    inspection_id_prefix: str = "INS-"

    # ---- Reference data snapshots ----
    # JSON artefacts; when unset the built-in defaults are used.
    taxonomy_path: str | None = None
    scoring_rules_path: str | None = None
    scoring_model: str = "flat_deduction"  # flat_deduction|weighted_average

    # ---- Lifecycle policy ----
    auto_assign_inspector: bool = True
    inspector_can_generate_report: bool = True

    # ---- Reports / rendering ----
    photo_storage_base_url: str = "http://localhost:5001"
    renderer_base_url: str = "http://localhost:3000"
    renderer_timeout_seconds: float = 60.0
    report_output_dir: str = "./uploads/pdfs"

    def model_post_init(self, __context) -> None:
        model = (self.scoring_model or "").strip().lower()
        if model not in SCORING_MODELS:
            raise ValueError(f"scoring_model must be one of {SCORING_MODELS}, got {self.scoring_model!r}")
        object.__setattr__(self, "scoring_model", model)

        env = (self.app_env or "local").strip().lower()
        is_prod = env in ("prod", "production")

        # Hard fail: report photos must not point at plaintext storage in prod
        if is_prod and not (self.photo_storage_base_url or "").lower().startswith("https://"):
            raise ValueError("SECURITY: photo_storage_base_url must be https in prod")


settings = Settings()
