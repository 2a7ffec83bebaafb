import os
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from dotenv import load_dotenv

# Načteme .env (musí být ve stejné složce jako tento soubor nebo výš)
load_dotenv(dotenv_path=Path(__file__).resolve().parent / ".env")

DATABASE_URL = os.getenv("DATABASE_URL")

if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL není nastavené v .env souboru")

# SQLite (lokální vývoj, testy) nepustí connection do jiného vlákna
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

# Vytvoření SQLAlchemy engine
engine = create_engine(DATABASE_URL, connect_args=connect_args)

# Factory na DB session
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

# Základ pro modely
Base = declarative_base()


# Dependency pro FastAPI – dostaneš db session do endpointů
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
