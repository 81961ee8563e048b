import logging

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool

from lms.core.config import settings

# -----------------------
# Logging setup
# -----------------------
logger = logging.getLogger(__name__)

# -----------------------
# Database URL
# -----------------------
DATABASE_URL = settings.sqlalchemy_database_url
IS_SQLITE = DATABASE_URL.startswith("sqlite")

# Hide password in logs
safe_db_url = (
    DATABASE_URL.replace(settings.db_password, "****")
    if settings.db_password and not IS_SQLITE
    else DATABASE_URL
)
logger.info(f"Using database: {safe_db_url}")

# -----------------------
# SQLAlchemy engine
# -----------------------
if IS_SQLITE:
    engine = create_engine(
        DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
    )
else:
    engine = create_engine(
        DATABASE_URL,
        echo=settings.debug,
        poolclass=QueuePool,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=1800,
        connect_args={"connect_timeout": 5},
    )

    # -----------------------
    # Keep all timestamps in UTC
    # -----------------------
    @event.listens_for(engine, "connect")
    def set_timezone(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("SET timezone='UTC'")
        cursor.close()


# -----------------------
# Session and Base
# -----------------------
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def check_connection() -> None:
    """Open one connection to fail fast on a bad database configuration."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection successful ✅")
    except Exception as e:
        logger.error(f"Failed to connect to database ❌: {str(e)}")
        raise


# -----------------------
# Dependency for FastAPI
# -----------------------
def get_db():
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database error occurred: {str(e)}")
        db.rollback()
        raise
    finally:
        db.close()
