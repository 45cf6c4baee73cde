from functools import lru_cache
from typing import Optional
import os

from sqlmodel import create_engine, Session

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./storefront.db")
DATABASE_ECHO = os.getenv("DATABASE_ECHO", "false").lower() in ("1", "true", "yes")


@lru_cache(maxsize=None)
def get_engine(url: Optional[str] = None):
    url = url or DATABASE_URL
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=DATABASE_ECHO, connect_args=connect_args)


def get_session(url: Optional[str] = None) -> Session:
    engine = get_engine(url)
    return Session(engine)
