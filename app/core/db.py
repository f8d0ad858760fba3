from collections.abc import AsyncGenerator
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings

# libpq options asyncpg rejects; SSL goes through connect_args instead.
_LIBPQ_ONLY_PARAMS = ("sslmode", "channel_binding")


def _with_driver(url: str, driver: str, drop_params: tuple[str, ...] = ()) -> str:
    parsed = urlparse(url)
    if parsed.scheme not in ("postgresql", "postgres"):
        return url
    query = parse_qs(parsed.query, keep_blank_values=True)
    for param in drop_params:
        query.pop(param, None)
    return urlunparse(
        (f"postgresql+{driver}", parsed.netloc, parsed.path, parsed.params, urlencode(query, doseq=True), parsed.fragment)
    )


def async_database_url(url: str) -> str:
    """Hosted Postgres URLs (postgres://...?sslmode=require) rewritten for asyncpg."""
    return _with_driver(url, "asyncpg", _LIBPQ_ONLY_PARAMS)


def sync_database_url(url: str) -> str:
    """Same database for Alembic, which runs on psycopg2 and keeps sslmode."""
    return _with_driver(url, "psycopg2")


def _engine_options(url: str) -> dict:
    options: dict = {"echo": settings.env == "development", "pool_pre_ping": True}
    if url.startswith("postgresql+asyncpg"):
        options.update(pool_size=5, max_overflow=10)
        if settings.database_ssl:
            options["connect_args"] = {"ssl": True}
    return options


_url = async_database_url(settings.database_url)
engine = create_async_engine(_url, **_engine_options(_url))

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session; commits when the handler returns, rolls back if it raised."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def dispose_engine() -> None:
    await engine.dispose()
