from logging.config import fileConfig

from dotenv import load_dotenv
from sqlalchemy import engine_from_config
from sqlalchemy import pool
from alembic import context

from bakery_reminders.config import settings
from bakery_reminders.db.base import Base
from bakery_reminders.db.tables import ALL_TABLE_NAMES, EXTERNAL_TABLE_NAMES
import bakery_reminders.models  # noqa: F401  (registers every model on Base.metadata)

load_dotenv()

# Models must cover exactly the owned tables plus the read-only external ones.
_registered = set(Base.metadata.tables)
_expected = set(ALL_TABLE_NAMES) | set(EXTERNAL_TABLE_NAMES)
assert _registered == _expected, (
    f"Model tables {_registered} must match bakery_reminders.db.tables {_expected}. "
    "Add new tables to ALL_TABLE_NAMES (owned) or EXTERNAL_TABLE_NAMES (order service)."
)

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
config.set_main_option("sqlalchemy.url", settings.database_url)


def include_object(obj, name, type_, reflected, compare_to):
    # orders/users/device_tokens are migrated by the order service, never here
    if type_ == "table" and name in EXTERNAL_TABLE_NAMES:
        return False
    return True


def run_migrations_offline() -> None:
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        include_object=include_object,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            include_object=include_object,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
