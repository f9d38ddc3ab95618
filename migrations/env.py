# migrations/env.py
from alembic import context
from sqlalchemy import engine_from_config, pool

from checkin.core.config import settings  # carrega .env
from checkin.db.base import Base
from checkin.db.session import normalize_url
import checkin.models  # noqa: F401

config = context.config

# Alembic usará a mesma URL da aplicação
config.set_main_option("sqlalchemy.url", normalize_url(settings.DATABASE_URL))

target_metadata = Base.metadata


def run_migrations_offline():
    url = config.get_main_option("sqlalchemy.url")
    context.configure(url=url, target_metadata=target_metadata, literal_binds=True, render_as_batch=True)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    connectable = engine_from_config(config.get_section(config.config_ini_section), prefix="sqlalchemy.", poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, render_as_batch=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
