"""
Application configuration loader and it handles:
- Environment variables
- LLM provider settings
- Task bounds and room defaults
- Database configuration

And, the main purpose:
Central place for system configuration.
"""


from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite+aiosqlite:///./rooms.db"

    # LLM
    LLM_PROVIDER: str = "groq"  # groq | mock (for no-key dev)
    GROQ_API_KEY: str = ""
    GROQ_BASE_URL: str = "https://api.groq.com/openai/v1"
    LLM_MODEL: str = "llama-3.3-70b-versatile"
    LLM_MAX_TOKENS: int = 2048
    LLM_TEMPERATURE: float = 0.7
    LLM_TIMEOUT_SECONDS: float = 60.0

    # Task bounds (checked once, at creation)
    TASK_EFFORT_MIN: int = 1
    TASK_EFFORT_MAX: int = 30
    TASK_IMPACT_MIN: int = 1
    TASK_IMPACT_MAX: int = 10

    # New room defaults
    DEFAULT_SPRINT_LENGTH_DAYS: int = 14
    DEFAULT_CAPACITY_POINTS: int = 40

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
