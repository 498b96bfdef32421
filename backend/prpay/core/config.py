from typing import List, Optional, Sequence, Tuple, Union

from pydantic import Field, AliasChoices, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_INSECURE_ALLOWED_ORIGINS_DEFAULTS = {
    "http://localhost:3000",
    "http://localhost:4001",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:4001",
}

TABLE_STORE_BACKENDS = {"supabase", "sql"}

CredentialGroup = Union[str, Tuple[str, ...]]


class Settings(BaseSettings):
    # Allow comma-separated env vars for list fields like ALLOWED_ORIGINS
    model_config = SettingsConfigDict(env_file=".env", env_parse_delimiter=",", extra="ignore")
    PROJECT_NAME: str = "PR Pay Agent"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    # CORS
    # Accepts either a JSON array or a comma-separated string, normalized below.
    ALLOWED_ORIGINS: List[str] | str = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:4001"],
        validation_alias=AliasChoices("ALLOWED_ORIGINS", "BACKEND_CORS_ORIGINS"),
    )

    # Redis configuration (rate limiting storage)
    REDIS_URL: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("REDIS_URL", "CACHE_REDIS_URL"),
    )

    # Completion backend (OpenAI chat completions with native tool calling)
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-5"
    OPENAI_BASE_URL: Optional[str] = None
    # gpt-5 only accepts the default temperature, so this stays unset unless overridden
    LLM_TEMPERATURE: Optional[float] = None
    LLM_REQUEST_TIMEOUT: int = 120  # seconds

    # Agent loop
    AGENT_MAX_ITERATIONS: int = 10
    AGENT_PARALLEL_TOOL_CALLS: bool = True
    AGENT_REQUEST_TIMEOUT_SECONDS: float = 240.0
    TOOL_EXECUTION_TIMEOUT_SECONDS: float = 60.0

    # Table store
    TABLE_STORE_BACKEND: str = "supabase"  # 'supabase' or 'sql'
    SUPABASE_URL: Optional[str] = None
    SUPABASE_ANON_KEY: Optional[str] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None
    SUPABASE_SCHEMA_RPC: str = "get_table_schema"
    SUPABASE_REQUEST_TIMEOUT: float = 30.0

    # Used when TABLE_STORE_BACKEND=sql
    DATABASE_URL: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("DATABASE_URL", "SQLALCHEMY_DATABASE_URI"),
    )
    SQLALCHEMY_ECHO: bool = False

    # Payment backend (Locus MCP server)
    LOCUS_API_KEY: Optional[str] = None
    LOCUS_MCP_URL: str = "https://mcp.paywithlocus.com/mcp"
    PAYMENT_TOOL_NAMESPACES: List[str] | str = Field(
        default_factory=lambda: ["locus_", "mcp__locus__"],
    )

    # GitHub OAuth through Metorial
    METORIAL_API_KEY: Optional[str] = None
    METORIAL_BASE_URL: str = "https://api.metorial.com"
    GITHUB_SERVER_DEPLOYMENT_ID: Optional[str] = None
    OAUTH_POLL_MAX_ATTEMPTS: int = 2
    OAUTH_POLL_INTERVAL_SECONDS: float = 1.0

    def missing_credentials(self, *groups: CredentialGroup) -> List[str]:
        """
        Return a description of every credential group that is not configured.

        A plain name must be set. A tuple of names is satisfied by any one of them.
        """
        missing = []
        for group in groups:
            names: Sequence[str] = (group,) if isinstance(group, str) else group
            if not any(getattr(self, name, None) for name in names):
                missing.append(" or ".join(names))
        return missing

    def table_store_credentials(self) -> List[CredentialGroup]:
        """Credential groups required by the configured table store backend."""
        if self.TABLE_STORE_BACKEND == "sql":
            return ["DATABASE_URL"]
        return ["SUPABASE_URL", ("SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_ANON_KEY")]

    def model_post_init(self, __context):
        """
        Validate configuration on startup. In production, fail hard if insecure defaults are detected.
        """
        is_prod = self.ENVIRONMENT.lower() == "production"
        errors = []

        if self.TABLE_STORE_BACKEND not in TABLE_STORE_BACKENDS:
            errors.append(
                f"TABLE_STORE_BACKEND must be one of: {', '.join(sorted(TABLE_STORE_BACKENDS))}."
            )

        # Require explicit ALLOWED_ORIGINS in production (avoid accidental localhost defaults)
        if is_prod and (not self.ALLOWED_ORIGINS or set(self.ALLOWED_ORIGINS).issubset(_INSECURE_ALLOWED_ORIGINS_DEFAULTS)):
            errors.append(
                "ALLOWED_ORIGINS must be set to your domain(s) in production (not localhost defaults)."
            )

        # In production, DEBUG must be disabled
        if is_prod and self.DEBUG:
            errors.append("DEBUG must be False in production.")

        if errors:
            error_msg = "Configuration errors:\n" + "\n".join(f"  - {e}" for e in errors)
            raise ValueError(error_msg)

    @field_validator("ALLOWED_ORIGINS", "PAYMENT_TOOL_NAMESPACES", mode="before")
    @classmethod
    def _split_list(cls, value):
        if isinstance(value, str):
            return [v.strip() for v in value.split(",") if v.strip()]
        return value

settings = Settings()
