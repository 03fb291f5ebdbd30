import logging

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session

from models.models import Base

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class Database:
    """
    Handle over the SQLAlchemy engine and its session factory.

    The handle is created without touching the network. The owner opens it
    with `connect()` when the process starts and releases the pool with
    `dispose()` at shutdown.

    Args:
        url (str): SQLAlchemy connection URL.
        **engine_kwargs: Extra keyword arguments forwarded to `create_engine`.
    """

    def __init__(self, url: str, **engine_kwargs):
        self.url = url
        self.engine_kwargs = engine_kwargs
        self.engine = None
        self.SessionLocal = None

    def connect(self):
        """
        Create the engine, check the connection and build the session factory.
        """
        self.engine_kwargs.setdefault("pool_pre_ping", True)
        self.engine = create_engine(self.url, **self.engine_kwargs)

        try:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            logger.info("Database connection established")
        except Exception as e:
            logger.error("Could not connect to the database: %s", e)
            raise

        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        return self

    def create_tables(self):
        Base.metadata.create_all(bind=self.engine)

    def session(self) -> Session:
        if self.SessionLocal is None:
            raise RuntimeError("Database is not connected. Call connect() first.")
        return self.SessionLocal()

    def dispose(self):
        if self.engine is not None:
            self.engine.dispose()
            logger.info("Database connection pool closed")
        self.engine = None
        self.SessionLocal = None


def get_db_session(request: Request):
    """
    Provide a database session for the current request and make sure it is
    closed once the response has been produced.

    Args:
        request (Request): Incoming request; the database handle lives in
            `request.app.state.database`.

    Yields:
        Session: A database session.
    """
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
