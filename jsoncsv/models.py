import logging
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import Boolean, DateTime, Integer, String, create_engine, inspect
from sqlalchemy.orm import Mapped, Session, declarative_base, mapped_column, sessionmaker

from . import config

# Setup logging
logger = logging.getLogger(__name__)

logger.info(f"Using database at: {config.DATABASE_URL}")

engine = create_engine(
    config.DATABASE_URL,
    connect_args={"check_same_thread": False}
)

# Create a configured "SessionLocal" class
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for our models
Base = declarative_base()


def safe_init_database(engine_to_use):
    """Initialize database without dropping existing tables"""
    inspector = inspect(engine_to_use)
    existing_tables = inspector.get_table_names()

    if not existing_tables:
        logger.info("No existing tables found, creating new database")
        Base.metadata.create_all(bind=engine_to_use)
    else:
        logger.info(f"Found existing tables: {existing_tables}")
        # Only create missing tables using the provided engine
        for table in Base.metadata.sorted_tables:
            if table.name not in existing_tables:
                logger.info(f"Creating missing table: {table.name}")
                table.create(bind=engine_to_use)


VALID_DELIMITERS = tuple(config.DELIMITER_CHOICES.values())


def _check_delimiter(v: str) -> str:
    if v == "\\t":
        return "\t"
    if v not in VALID_DELIMITERS:
        raise ValueError(f"Delimiter must be one of {list(VALID_DELIMITERS)}")
    return v


# Pydantic model for settings
class SettingsModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra='forbid')

    dark_mode: bool = Field(default=False, description="Use the dark theme")
    delimiter: str = Field(default=",", description="CSV delimiter character")
    include_headers: bool = Field(default=True, description="Write a header row")
    quote_fields: bool = Field(default=True, description="Quote fields where necessary")
    max_preview_rows: int = Field(
        default=config.DEFAULT_PREVIEW_ROWS,
        ge=config.MIN_PREVIEW_ROWS,
        le=config.MAX_PREVIEW_ROWS,
        description="Maximum number of rows to show in preview"
    )

    @field_validator('delimiter')
    @classmethod
    def validate_delimiter(cls, v: str) -> str:
        return _check_delimiter(v)


class SettingsUpdate(BaseModel):
    """Partial settings update; omitted fields are left unchanged"""
    model_config = ConfigDict(extra='forbid')

    dark_mode: Optional[bool] = None
    delimiter: Optional[str] = None
    include_headers: Optional[bool] = None
    quote_fields: Optional[bool] = None
    max_preview_rows: Optional[int] = Field(
        default=None, ge=config.MIN_PREVIEW_ROWS, le=config.MAX_PREVIEW_ROWS
    )

    @field_validator('delimiter')
    @classmethod
    def validate_delimiter(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _check_delimiter(v)


class Settings(Base):
    __tablename__ = "settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    dark_mode: Mapped[bool] = mapped_column(Boolean, default=False)
    delimiter: Mapped[str] = mapped_column(String, default=",")
    include_headers: Mapped[bool] = mapped_column(Boolean, default=True)
    quote_fields: Mapped[bool] = mapped_column(Boolean, default=True)
    max_preview_rows: Mapped[int] = mapped_column(Integer, default=config.DEFAULT_PREVIEW_ROWS)

    def model_dump(self) -> dict:
        """Convert model to dictionary (Pydantic v2 compatible)"""
        return SettingsModel.model_validate(self).model_dump()


class RecentFile(Base):
    __tablename__ = "recent_files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    path: Mapped[str] = mapped_column(String, unique=True, index=True)
    opened_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

    def model_dump(self) -> dict:
        return {
            "id": self.id,
            "path": self.path,
            "opened_at": self.opened_at.isoformat() if self.opened_at else None,
        }


def get_settings(db: Session) -> Settings:
    """Return the settings row, creating it with defaults on first access"""
    settings = db.query(Settings).first()
    if not settings:
        logger.info("No settings found, creating defaults")
        settings = Settings(**SettingsModel().model_dump())
        db.add(settings)
        db.commit()
        db.refresh(settings)
    return settings


def update_settings(db: Session, update: SettingsUpdate) -> Settings:
    settings = get_settings(db)
    update_data = update.model_dump(exclude_unset=True, exclude_none=True)
    for key, value in update_data.items():
        setattr(settings, key, value)
    db.commit()
    db.refresh(settings)
    logger.info(f"Settings updated: {sorted(update_data)}")
    return settings


def list_recent_files(db: Session) -> List[RecentFile]:
    """Recent files, most recently added first"""
    return db.query(RecentFile).order_by(RecentFile.id.desc()).all()


def add_recent_file(db: Session, path: str) -> RecentFile:
    """
    Record an opened file in the history.

    A path already in the history keeps its position. Otherwise it is added at
    the front and the oldest entry is evicted once MAX_RECENT_FILES is exceeded.
    """
    existing = db.query(RecentFile).filter(RecentFile.path == path).first()
    if existing:
        return existing

    recent = list_recent_files(db)
    for stale in recent[config.MAX_RECENT_FILES - 1:]:
        logger.info(f"Evicting recent file: {stale.path}")
        db.delete(stale)

    entry = RecentFile(path=path)
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def get_recent_file(db: Session, file_id: int) -> Optional[RecentFile]:
    return db.query(RecentFile).filter(RecentFile.id == file_id).first()
