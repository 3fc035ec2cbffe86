import os
from pathlib import Path
from dotenv import load_dotenv

# .env first, then .env.local overrides it
root = Path(__file__).parent
env_file = root / ".env"
env_local = root / ".env.local"

if env_file.exists():
    load_dotenv(dotenv_path=env_file, override=False)
if env_local.exists():
    load_dotenv(dotenv_path=env_local, override=True)

# MongoDB
DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "study_notebook")

# Server
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# Client
NOTEBOOK_API_BASE = os.getenv("NOTEBOOK_API_BASE", "http://127.0.0.1:8000")
