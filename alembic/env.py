from beenaround.config import settings
from beenaround.models import Base
from logging.config import fileConfig
from sqlalchemy import engine_from_config, make_url
from sqlalchemy import pool
from alembic import context

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

# Interpret the config file for Python logging.
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Model metadata for 'autogenerate' support
target_metadata = Base.metadata


# Migrations always run on a synchronous driver
def _synchronous_url(async_url: str) -> str:
    url = make_url(async_url)
    driver = url.drivername

    if driver == "postgresql+asyncpg":
        url = url.set(drivername="postgresql+psycopg")
    elif driver in {"postgresql", "postgresql+psycopg_async", "postgresql+psycopg2"}:
        url = url.set(drivername="postgresql+psycopg")
    elif driver == "sqlite+aiosqlite":
        url = url.set(drivername="sqlite+pysqlite")
    elif "+" in driver:
        url = url.set(drivername=driver.split("+")[0])

    return url.render_as_string(hide_password=False)


sync_database_url = _synchronous_url(settings.database_url)


def run_migrations_offline() -> None:
    """Emit SQL for the configured URL without connecting."""
    context.configure(
        url=sync_database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = sync_database_url
    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection, target_metadata=target_metadata
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
