import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent

# .env vedle backendu; proměnné z prostředí mají přednost
load_dotenv(dotenv_path=BASE_DIR / ".env")

PUBLIC_DIR = Path(os.getenv("PUBLIC_DIR", str(BASE_DIR / "public")))
MANUALS_DIR = PUBLIC_DIR / "manuals"
IMAGES_DIR = PUBLIC_DIR / "images"
PRODUCT_IMAGES_DIR = IMAGES_DIR / "products"
COMMENT_IMAGES_DIR = IMAGES_DIR / "comments"

for _dir in (MANUALS_DIR, PRODUCT_IMAGES_DIR, COMMENT_IMAGES_DIR):
    _dir.mkdir(parents=True, exist_ok=True)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o")
OPENAI_TEST_MODEL = os.getenv("OPENAI_TEST_MODEL", "gpt-4o-mini")

JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me")
# mobilní klient drží token týden
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", 7 * 24 * 60))

# výběr stránek manuálu pro asistenta
OPENAI_EMBEDDING_MODEL = os.getenv("OPENAI_EMBEDDING_MODEL", "text-embedding-3-small")
OPENAI_EMBEDDING_DIMENSIONS = int(os.getenv("OPENAI_EMBEDDING_DIMENSIONS", 1536))
