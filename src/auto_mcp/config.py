"""Configuration management for Auto MCP"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # MCP server settings
    server_name: str = "auto-mcp"
    instructions: str | None = None
    mount_path: str = "/mcp"
    stateless_http: bool = True
    json_response: bool = True
    structured_content: bool = True

    # Discovery
    # Pins discovery to a named API group; the most recently registered group is used otherwise
    api_group: str | None = None
    enable_query_options: bool = True

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="AUTO_MCP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()


def get_config() -> Settings:
    """Get the global configuration instance."""
    return settings
