from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from churchflow.settings import settings


Base = declarative_base()

# Database engine
load_dotenv()
connect_args = (
    {"check_same_thread": False} if settings.DB_URL.startswith("sqlite") else {}
)
engine = create_engine(settings.DB_URL, connect_args=connect_args)

# DB sessions
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
