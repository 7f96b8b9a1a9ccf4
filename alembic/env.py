import os
from logging.config import fileConfig

from dotenv import load_dotenv
from sqlalchemy import create_engine, pool

from alembic import context

load_dotenv()

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

# An explicit URL (set by the CLI and tests) wins over DB_PATH from the
# environment
sqlalchemy_url = config.get_main_option("sqlalchemy.url")
if not sqlalchemy_url:
    db_path_absolute = os.path.abspath(os.getenv("DB_PATH", "data/ledger.db"))
    sqlalchemy_url = f"sqlite:///{db_path_absolute}"
    config.set_main_option("sqlalchemy.url", sqlalchemy_url)

# Interpret the config file for Python logging.
# This line sets up loggers basically.
if config.config_file_name is not None and config.attributes.get(
    "configure_logger", True
):
    fileConfig(config.config_file_name, disable_existing_loggers=False)

# The schema is maintained by hand-written migrations
target_metadata = None


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode.

    This configures the context with just a URL
    and not an Engine. Calls to context.execute() here emit the given
    string to the script output.
    """
    context.configure(
        url=sqlalchemy_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode.

    ``Database.migrate`` hands over a connection that already carries the
    SQLCipher key. Without one (the alembic command line) a plain sqlite3
    engine is built from the URL.
    """
    connection = config.attributes.get("connection")
    if connection is not None:
        _run_with(connection)
        return

    connectable = create_engine(
        sqlalchemy_url,
        poolclass=pool.NullPool,
        connect_args={"check_same_thread": False},
    )

    with connectable.connect() as connection:
        _run_with(connection)


def _run_with(connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata)

    with context.begin_transaction():
        context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
