import os
from dotenv import load_dotenv

load_dotenv()  # Load from .env file

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./journal.db")

# Token & Auth
SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

# OpenAI
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_CHAT_MODEL = os.getenv("OPENAI_CHAT_MODEL", "gpt-4o-mini")
OPENAI_INSIGHT_MODEL = os.getenv("OPENAI_INSIGHT_MODEL", "gpt-4o")

# AI job timing (seconds)
ENTRY_AI_TIMEOUT_SECONDS = float(os.getenv("ENTRY_AI_TIMEOUT_SECONDS", "30"))
BATCH_AI_TIMEOUT_SECONDS = float(os.getenv("BATCH_AI_TIMEOUT_SECONDS", "60"))
STALE_PROCESSING_SECONDS = int(os.getenv("STALE_PROCESSING_SECONDS", "120"))

# HTTP
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
