"""
Collaborator Adapters Module

Relational record and document stores on SQLAlchemy, and a local
directory standing in for object storage. Every failure surfaces as
CollaboratorError.
"""

import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Protocol

from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, String, Text, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .logging import get_logger
from .results import CollaboratorError

logger = get_logger(__name__)

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StockRow(Base):
    __tablename__ = "stocks"

    id = Column(String(36), primary_key=True, default=_new_id)
    batch_number = Column(String(255), nullable=False)
    stock_number = Column(String(255), nullable=False)
    description = Column(Text, default="")
    quantity = Column(Integer, default=0)
    status = Column(String(20), default="available")
    date_added = Column(DateTime(timezone=True), default=_utcnow)

    def __repr__(self):
        return f"<StockRow(batch='{self.batch_number}', stock='{self.stock_number}')>"


class DocumentRow(Base):
    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, default=_new_id)
    file_name = Column(String(255), nullable=False)
    file_path = Column(String(512), nullable=False)
    file_size = Column(Integer, default=0)
    file_type = Column(String(255), default="")
    category = Column(String(255))
    description = Column(Text)
    uploaded_at = Column(DateTime(timezone=True), default=_utcnow)
    processed = Column(Boolean, default=False)
    parsed_data = Column(JSON)

    def __repr__(self):
        return f"<DocumentRow(file_name='{self.file_name}')>"


def _row_to_dict(row) -> Dict:
    return {column.name: getattr(row, column.name) for column in row.__table__.columns}


def make_engine(database_url: str):
    """Create an engine. In-memory SQLite shares one connection so all sessions see the same data."""
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url)


# ═══════════════════════════════════════════════════════════════
# RECORD STORES
# ═══════════════════════════════════════════════════════════════

class RecordStore(Protocol):
    """What the stock service needs from the database collaborator."""

    def list(self, order_by: str = "date_added", descending: bool = True) -> List[Dict]: ...

    def create(self, row: Dict) -> Dict: ...

    def update(self, record_id: str, fields: Dict) -> Dict: ...

    def delete(self, record_id: str) -> None: ...


class SqlTableStore:
    """Generic list/create/update/delete over one mapped table."""

    model = None

    def __init__(self, database_url: str = None, engine=None):
        if engine is None:
            engine = make_engine(database_url)
        self.engine = engine
        Base.metadata.create_all(engine)
        self.Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def _fail(self, action: str, exc: Exception) -> CollaboratorError:
        table = self.model.__tablename__
        logger.warning("store_call_failed", table=table, action=action, error=str(exc))
        return CollaboratorError(f"Failed to {action} {table} record")

    def list(self, order_by: str = "date_added", descending: bool = True) -> List[Dict]:
        column = getattr(self.model, order_by, None)
        if column is None:
            raise CollaboratorError(f"Unknown column '{order_by}' for {self.model.__tablename__}")
        db = self.Session()
        try:
            query = db.query(self.model).order_by(column.desc() if descending else column.asc())
            return [_row_to_dict(row) for row in query.all()]
        except SQLAlchemyError as e:
            raise self._fail("list", e) from e
        finally:
            db.close()

    def create(self, row: Dict) -> Dict:
        db = self.Session()
        try:
            instance = self.model(**row)
            db.add(instance)
            db.commit()
            db.refresh(instance)
            return _row_to_dict(instance)
        except (SQLAlchemyError, TypeError) as e:
            db.rollback()
            raise self._fail("create", e) from e
        finally:
            db.close()

    def update(self, record_id: str, fields: Dict) -> Dict:
        db = self.Session()
        try:
            instance = db.query(self.model).filter(self.model.id == record_id).first()
            if instance is None:
                raise CollaboratorError(f"No {self.model.__tablename__} record with id {record_id}")
            for key, value in fields.items():
                if not hasattr(self.model, key):
                    raise CollaboratorError(f"Unknown column '{key}'")
                setattr(instance, key, value)
            db.commit()
            db.refresh(instance)
            return _row_to_dict(instance)
        except SQLAlchemyError as e:
            db.rollback()
            raise self._fail("update", e) from e
        finally:
            db.close()

    def delete(self, record_id: str) -> None:
        db = self.Session()
        try:
            instance = db.query(self.model).filter(self.model.id == record_id).first()
            if instance is None:
                raise CollaboratorError(f"No {self.model.__tablename__} record with id {record_id}")
            db.delete(instance)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise self._fail("delete", e) from e
        finally:
            db.close()


class SqlRecordStore(SqlTableStore):
    model = StockRow


class SqlDocumentStore(SqlTableStore):
    model = DocumentRow

    def list(self, order_by: str = "uploaded_at", descending: bool = True) -> List[Dict]:
        return super().list(order_by, descending)


# ═══════════════════════════════════════════════════════════════
# FILE STORE
# ═══════════════════════════════════════════════════════════════

class LocalFileStore:
    """A directory used as the document bucket."""

    def __init__(self, root):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if self.root.resolve() not in target.parents:
            raise CollaboratorError(f"Invalid storage path: {path}")
        return target

    def upload(self, path: str, data: bytes) -> str:
        target = self._resolve(path)
        if target.exists():
            raise CollaboratorError("The resource already exists")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise CollaboratorError(f"Failed to upload {path}") from e
        logger.debug("file_uploaded", path=path, size=len(data))
        return path

    def download(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return target.read_bytes()
        except OSError as e:
            raise CollaboratorError(f"Failed to download {path}") from e

    def remove(self, paths: Iterable[str]) -> None:
        for path in paths:
            target = self._resolve(path)
            try:
                target.unlink(missing_ok=True)
            except OSError as e:
                raise CollaboratorError(f"Failed to remove {path}") from e
