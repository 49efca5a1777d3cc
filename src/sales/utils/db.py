"""Database schema helpers for relational providers.

The memory provider needs no schema; for sqlite and postgresql providers the
aggregate, entity and projection tables are created from Protean's metadata.
"""

from protean.domain import Domain
from sqlalchemy import create_engine

_RELATIONAL_PROVIDERS = ("sqlite", "postgresql")


def _register_models(domain: Domain, provider_name: str) -> None:
    # Touching _dao forces Protean to build and register the SQLAlchemy model
    for registry in (domain.registry.aggregates, domain.registry.entities, domain.registry.projections):
        for _, record in registry.items():
            if record.cls.meta_.provider == provider_name:
                domain.repository_for(record.cls)._dao  # noqa: B018


def setup_db(domain: Domain) -> list[str]:
    """Create tables for every relational provider. Returns the providers touched."""
    touched = []
    with domain.domain_context():
        for name, provider in domain.providers.items():
            if provider.conn_info["provider"] not in _RELATIONAL_PROVIDERS:
                continue
            engine = create_engine(provider.conn_info["database_uri"])
            _register_models(domain, name)
            provider._metadata.create_all(engine)
            touched.append(name)
    return touched


def drop_db(domain: Domain) -> list[str]:
    """Drop tables for every relational provider. Returns the providers touched."""
    touched = []
    with domain.domain_context():
        for name, provider in domain.providers.items():
            if provider.conn_info["provider"] not in _RELATIONAL_PROVIDERS:
                continue
            engine = create_engine(provider.conn_info["database_uri"])
            provider._metadata.drop_all(engine)
            touched.append(name)
    return touched
