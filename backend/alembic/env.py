import os
import sys
from logging.config import fileConfig

from sqlmodel import SQLModel
from sqlalchemy import engine_from_config, pool
from alembic import context

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fwaudit.models import ConfigRisk  # noqa: F401  registers config_risks
from fwaudit.core.config import get_settings

VERSION_TABLE = "fwaudit_alembic_version"

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = SQLModel.metadata


def _include_object(obj, name, type_, reflected, compare_to):
    # Autogenerate only manages tables declared in fwaudit.models
    if type_ == "table" and reflected and name not in target_metadata.tables:
        return False
    return True


def _configure(**kwargs):
    url = get_settings().database_url
    context.configure(
        target_metadata=target_metadata,
        version_table=VERSION_TABLE,
        include_object=_include_object,
        compare_type=True,
        render_as_batch=url.startswith("sqlite"),
        **kwargs,
    )


def run_migrations_offline():
    _configure(url=get_settings().database_url, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    cfg = config.get_section(config.config_ini_section, {})
    cfg["sqlalchemy.url"] = get_settings().database_url
    connectable = engine_from_config(cfg, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with connectable.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
