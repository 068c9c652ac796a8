import os
from pathlib import Path
from dotenv import load_dotenv
from sqlalchemy import (
    create_engine,
    make_url,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import (
    sessionmaker,
)


load_dotenv()

DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///data/coupon_desk.db")


def build_engine(url: str) -> Engine:
    connect_args = {}
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        # Sessions are opened in FastAPI's threadpool and used on the event loop
        connect_args["check_same_thread"] = False
        if parsed.database and parsed.database != ":memory:":
            Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url, connect_args=connect_args)


engine = build_engine(DATABASE_URL)
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def get_db():
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
