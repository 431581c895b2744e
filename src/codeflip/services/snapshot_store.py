from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import sessionmaker
from sqlmodel import Field, Session, SQLModel, create_engine


class Snapshot(SQLModel, table=True):
    key: str = Field(primary_key=True)
    payload: str
    updated_at: datetime


class SnapshotStore:
    """One text payload per storage key."""

    def __init__(self, url="sqlite:///./codeflip.db"):
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        self.engine = create_engine(url, connect_args=connect_args)
        SQLModel.metadata.create_all(self.engine)
        self.SessionLocal = sessionmaker(bind=self.engine, class_=Session, expire_on_commit=False)

    def get(self, key: str) -> Optional[str]:
        with self.SessionLocal() as s:
            row = s.get(Snapshot, key)
            return row.payload if row else None

    def put(self, key: str, payload: str) -> None:
        with self.SessionLocal() as s:
            s.merge(Snapshot(key=key, payload=payload, updated_at=datetime.now(timezone.utc)))
            s.commit()

    def delete(self, key: str) -> None:
        with self.SessionLocal() as s:
            row = s.get(Snapshot, key)
            if row is not None:
                s.delete(row)
                s.commit()
