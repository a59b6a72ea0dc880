"""Dependency injection for API routes.

Provides FastAPI dependencies for stores, the membership index and the
dispatcher. Backends are chosen from settings (``storage.backend`` and
``directory.backend``) and instances are created once and reused.
Override them in tests through ``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends

from leadrouter.audit.store import AuditLog
from leadrouter.audit.stores.inmemory import InMemoryAuditLog
from leadrouter.audit.stores.postgres import PostgresAuditLog
from leadrouter.config import Settings, get_settings
from leadrouter.config.models.directory import DirectoryConfig
from leadrouter.db.pool import PostgresPool
from leadrouter.membership import (
    HttpOfficeDirectory,
    InMemoryOfficeDirectory,
    MembershipIndex,
    Office,
    OfficeDirectory,
)
from leadrouter.observability.logging import get_logger
from leadrouter.routing.dispatcher import Dispatcher
from leadrouter.routing.locks import LeadLocks
from leadrouter.routing.selection import ConsultantSelectionStrategy, create_selection_strategy
from leadrouter.routing.stores import (
    InMemoryLeadStore,
    InMemoryRuleStore,
    LeadStore,
    PostgresLeadStore,
    PostgresRuleStore,
    RuleStore,
)
from leadrouter.routing.validation import RuleValidator

logger = get_logger(__name__)

# Shared connection pool and clients
_postgres_pool: PostgresPool | None = None
_office_directory: OfficeDirectory | None = None

# Store and service instances - created once and reused
_membership_index: MembershipIndex | None = None
_audit_log: AuditLog | None = None
_rule_store: RuleStore | None = None
_lead_store: LeadStore | None = None
_selection_strategy: ConsultantSelectionStrategy | None = None
_dispatcher: Dispatcher | None = None


async def get_postgres_pool() -> PostgresPool:
    """Get the shared PostgreSQL connection pool.

    Creates and connects the pool on first access. The DSN comes from
    LEADROUTER_DATABASE_URL or DATABASE_URL.
    """
    global _postgres_pool
    if _postgres_pool is None:
        _postgres_pool = PostgresPool.from_config(get_settings().storage.postgres)
        await _postgres_pool.connect()
    return _postgres_pool


def build_office_directory(config: DirectoryConfig) -> OfficeDirectory:
    """Directory for ``config.backend``; the inmemory one starts with ``config.offices``."""
    if config.backend == "http":
        return HttpOfficeDirectory(
            base_url=config.base_url,
            timeout=config.timeout_seconds,
            token=config.token,
        )
    return InMemoryOfficeDirectory(
        [
            Office(
                id=seed.id,
                name=seed.name,
                city=seed.city,
                consultant_ids=frozenset(seed.consultant_ids),
            )
            for seed in config.offices
        ]
    )


def get_office_directory() -> OfficeDirectory:
    """Get the office directory configured by ``directory.backend``."""
    global _office_directory
    if _office_directory is None:
        directory = get_settings().directory
        _office_directory = build_office_directory(directory)
        logger.info(
            "office_directory_initialized",
            backend=directory.backend,
            seeded_offices=len(directory.offices),
        )
    return _office_directory


def get_membership_index() -> MembershipIndex:
    """Get the MembershipIndex over the configured office directory."""
    global _membership_index
    if _membership_index is None:
        _membership_index = MembershipIndex(get_office_directory())
    return _membership_index


def get_rule_validator() -> RuleValidator:
    """Build a RuleValidator from ``rules`` settings."""
    rules = get_settings().rules
    return RuleValidator(
        get_membership_index(),
        min_priority=rules.min_priority,
        max_priority=rules.max_priority,
        unique_priorities=rules.unique_priorities,
    )


async def get_audit_log() -> AuditLog:
    """Get the AuditLog for the configured storage backend."""
    global _audit_log
    if _audit_log is None:
        if get_settings().storage.backend == "postgres":
            _audit_log = PostgresAuditLog(await get_postgres_pool())
        else:
            _audit_log = InMemoryAuditLog()
        logger.info("audit_log_initialized", store_type=get_settings().storage.backend)
    return _audit_log


async def _get_inmemory_audit_log() -> InMemoryAuditLog:
    audit_log = await get_audit_log()
    if not isinstance(audit_log, InMemoryAuditLog):
        raise RuntimeError("in-memory stores require the in-memory audit log")
    return audit_log


async def get_rule_store() -> RuleStore:
    """Get the RuleStore for the configured storage backend."""
    global _rule_store
    if _rule_store is None:
        if get_settings().storage.backend == "postgres":
            _rule_store = PostgresRuleStore(await get_postgres_pool(), get_rule_validator())
        else:
            _rule_store = InMemoryRuleStore(get_rule_validator(), await _get_inmemory_audit_log())
        logger.info("rule_store_initialized", store_type=get_settings().storage.backend)
    return _rule_store


async def get_lead_store() -> LeadStore:
    """Get the LeadStore for the configured storage backend."""
    global _lead_store
    if _lead_store is None:
        if get_settings().storage.backend == "postgres":
            _lead_store = PostgresLeadStore(await get_postgres_pool())
        else:
            _lead_store = InMemoryLeadStore(await _get_inmemory_audit_log())
        logger.info("lead_store_initialized", store_type=get_settings().storage.backend)
    return _lead_store


async def get_selection_strategy() -> ConsultantSelectionStrategy:
    """Get the strategy named by ``dispatch.selection_strategy``."""
    global _selection_strategy
    if _selection_strategy is None:
        name = get_settings().dispatch.selection_strategy
        if name == "least_loaded":
            _selection_strategy = create_selection_strategy(name, lead_store=await get_lead_store())
        else:
            _selection_strategy = create_selection_strategy(name)
        logger.info("selection_strategy_initialized", strategy=name)
    return _selection_strategy


async def get_dispatcher() -> Dispatcher:
    """Get the Dispatcher wired to the configured stores."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = Dispatcher(
            rule_store=await get_rule_store(),
            lead_store=await get_lead_store(),
            audit_log=await get_audit_log(),
            membership=get_membership_index(),
            selection=await get_selection_strategy(),
            locks=LeadLocks(),
        )
        logger.info("dispatcher_initialized")
    return _dispatcher


# Type aliases for dependency injection
SettingsDep = Annotated[Settings, Depends(get_settings)]
AuditLogDep = Annotated[AuditLog, Depends(get_audit_log)]
RuleStoreDep = Annotated[RuleStore, Depends(get_rule_store)]
LeadStoreDep = Annotated[LeadStore, Depends(get_lead_store)]
MembershipIndexDep = Annotated[MembershipIndex, Depends(get_membership_index)]
DispatcherDep = Annotated[Dispatcher, Depends(get_dispatcher)]


async def reset_dependencies() -> None:
    """Reset all cached dependencies.

    Closes connections before resetting. Used on shutdown and in tests.
    """
    global _postgres_pool, _office_directory, _membership_index, _audit_log
    global _rule_store, _lead_store, _selection_strategy, _dispatcher

    if _postgres_pool is not None:
        await _postgres_pool.close()
        _postgres_pool = None

    if isinstance(_office_directory, HttpOfficeDirectory):
        await _office_directory.close()
    _office_directory = None

    _membership_index = None
    _audit_log = None
    _rule_store = None
    _lead_store = None
    _selection_strategy = None
    _dispatcher = None
    get_settings.cache_clear()
