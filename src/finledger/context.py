"""Application context for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine

from .config import BaseConfig
from .infra.database import SessionFactory, create_db_engine, create_session_factory, init_database
from .infra.repositories import (
    SQLModelAccountRepository,
    SQLModelCategoryRepository,
    SQLModelTransactionRepository,
    SQLModelUserRepository,
)
from .logging_config import get_logger
from .services.analytics import AnalyticsService
from .services.auth import AuthService
from .services.export import ExportService
from .services.ledger_service import LedgerService

logger = get_logger("context")


@dataclass
class AppContext:
    """Everything a caller needs, built once per application run."""

    config: BaseConfig
    engine: Engine
    session_factory: SessionFactory

    user_repo: SQLModelUserRepository
    account_repo: SQLModelAccountRepository
    category_repo: SQLModelCategoryRepository
    transaction_repo: SQLModelTransactionRepository

    ledger: LedgerService
    analytics: AnalyticsService
    exporter: ExportService
    auth: AuthService

    def close(self) -> None:
        """Release pooled database connections."""
        self.engine.dispose()

    def __enter__(self) -> "AppContext":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def create_app_context(config: Optional[BaseConfig] = None) -> AppContext:
    """Create and initialize the application context."""

    if config is None:
        config = BaseConfig()

    engine = create_db_engine(config)
    init_database(engine)
    session_factory = create_session_factory(engine)

    user_repo = SQLModelUserRepository(session_factory)
    account_repo = SQLModelAccountRepository(session_factory)
    category_repo = SQLModelCategoryRepository(session_factory)
    transaction_repo = SQLModelTransactionRepository(session_factory)

    logger.info("Application context ready", extra={"database_url": config.DATABASE_URL})

    return AppContext(
        config=config,
        engine=engine,
        session_factory=session_factory,
        user_repo=user_repo,
        account_repo=account_repo,
        category_repo=category_repo,
        transaction_repo=transaction_repo,
        ledger=LedgerService(session_factory),
        analytics=AnalyticsService(transaction_repo, category_repo, account_repo, config),
        exporter=ExportService(account_repo, category_repo, transaction_repo),
        auth=AuthService(user_repo, category_repo, config),
    )
