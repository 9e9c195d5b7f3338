from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from bidflow.core.config import settings

DATABASE_URL = settings.get_database_url()

# SQLite connections are shared across the threadpool FastAPI runs sync endpoints in
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, pool_pre_ping=True, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
