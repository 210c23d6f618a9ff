import logging
from collections.abc import Iterator

from fastapi import Depends, Request
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import sessionmaker, Session

logger = logging.getLogger(__name__)


class Database:
    """
    Explicit storage handle.

    Opened once at application startup and closed on shutdown (see the
    lifespan in wealthmap.main). Route handlers never touch the engine
    directly; they receive sessions through get_db.
    """

    def __init__(
        self,
        url: str,
        pool_size: int = 10,
        max_overflow: int = 20,
        echo: bool = False,
    ):
        self.url = url
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.echo = echo
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database is not open")
        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        if self._session_factory is None:
            raise RuntimeError("Database is not open")
        return self._session_factory

    def open(self) -> None:
        if self._engine is not None:
            return

        if self.url.startswith("sqlite"):
            # SQLite pools reject the sizing arguments
            engine_kwargs = {"connect_args": {"check_same_thread": False}}
        else:
            engine_kwargs = {
                "pool_size": self.pool_size,
                "max_overflow": self.max_overflow,
            }

        self._engine = create_engine(
            self.url,
            pool_pre_ping=True,  # Verify connections before using
            echo=self.echo,  # Log SQL queries in debug mode
            **engine_kwargs,
        )
        self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self._engine)
        logger.info("Database opened (%s)", self._engine.url.render_as_string(hide_password=True))

    def close(self) -> None:
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("Database closed")


def get_session_factory(request: Request) -> sessionmaker:
    """FastAPI dependency returning the session factory of the open Database."""
    return request.app.state.database.session_factory


def get_db(session_factory: sessionmaker = Depends(get_session_factory)) -> Iterator[Session]:
    """
    FastAPI dependency for database sessions.

    Yields a database session and ensures it's closed after use.

    Usage:
        @app.get("/items")
        def get_items(db: Session = Depends(get_db)):
            return db.query(Item).all()
    """
    db = session_factory()
    try:
        yield db
    finally:
        db.close()
