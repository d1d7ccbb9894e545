from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application
    app_name: str = "IOLTA Trust Account Manager"
    app_version: str = "1.0.0"
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str = "postgresql+asyncpg://iolta:iolta@db:5432/iolta"

    # Encryption
    field_encryption_key: str = "CHANGE_ME"

    # External trust ledger (Case.dev Payments)
    ledger_api_key: str = ""
    ledger_api_base: str = "https://api.case.dev/payments/v1"
    ledger_api_version: str = "2024-01"
    ledger_timeout_seconds: float = 10.0
    ledger_strict_disbursements: bool = True

    # Document extraction (LLM)
    llm_api_url: str = "https://api.case.dev/llm/v1/chat/completions"
    llm_api_key: str = ""
    llm_model: str = "anthropic/claude-sonnet-4.5"
    llm_timeout_seconds: float = 120.0
    max_document_chars: int = 200_000

    # CORS
    backend_cors_origins: list[str] = ["http://localhost", "http://localhost:3000"]

    model_config = {"env_file": ".env", "case_sensitive": False}


settings = Settings()
