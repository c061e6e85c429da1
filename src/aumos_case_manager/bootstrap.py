"""Dependency wiring for aumos-case-manager.

build_container registers every repository and service for one unit of work
(one database session). Repositories and services are singletons within the
container, so a request sees one repository instance per entity.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from aumos_case_manager.adapters.repositories import LawsuitRepository, LawyerRepository
from aumos_case_manager.core.container import Container
from aumos_case_manager.core.services import LawsuitService, LawyerService
from aumos_case_manager.observability import get_logger
from aumos_case_manager.settings import Settings

SESSION = "session"
SETTINGS = "settings"
LOGGER = "logger"
LAWYER_REPOSITORY = "lawyer_repository"
LAWSUIT_REPOSITORY = "lawsuit_repository"
LAWYER_SERVICE = "lawyer_service"
LAWSUIT_SERVICE = "lawsuit_service"


def build_container(
    session: AsyncSession,
    settings: Settings,
    logger: Any = None,
) -> Container:
    """Register repositories and services bound to ``session``.

    Args:
        session: Async session shared by every repository in the container.
        settings: Service settings passed to the services.
        logger: Structured logger passed to the services.

    Returns:
        A Container ready to resolve LAWYER_SERVICE and LAWSUIT_SERVICE.
    """
    container = Container()
    container.register_instance(SESSION, session)
    container.register_instance(SETTINGS, settings)
    container.register_instance(LOGGER, logger or get_logger("aumos_case_manager.services"))

    container.register_singleton(LAWYER_REPOSITORY, LawyerRepository, [SESSION])
    container.register_singleton(LAWSUIT_REPOSITORY, LawsuitRepository, [SESSION])

    container.register_singleton(
        LAWYER_SERVICE, LawyerService, [LAWYER_REPOSITORY, SETTINGS, LOGGER]
    )
    container.register_singleton(
        LAWSUIT_SERVICE,
        LawsuitService,
        [LAWSUIT_REPOSITORY, LAWYER_REPOSITORY, SETTINGS, LOGGER],
    )
    return container
