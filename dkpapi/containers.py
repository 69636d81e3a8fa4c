from dependency_injector import containers, providers

from dkpapi.config import Settings
from dkpapi.database.session import get_db
from dkpapi.services.decay_service import DecayService
from dkpapi.services.loot_service import LootService
from dkpapi.services.loot_system_service import LootSystemService
from dkpapi.services.point_service import PointService
from dkpapi.services.ranking_service import RankingService


class ConfigModule(containers.DeclarativeContainer):
    """Application configuration."""

    config = providers.Singleton(Settings)


class RepositoryModule(containers.DeclarativeContainer):
    """Database session."""

    get_db = providers.Resource(get_db)


class ServiceModule(containers.DeclarativeContainer):
    """Service layer dependencies."""

    config = providers.DependenciesContainer()
    repositories = providers.DependenciesContainer()

    loot_system_service = providers.Factory(LootSystemService, db=repositories.get_db)
    point_service = providers.Factory(PointService, db=repositories.get_db)
    ranking_service = providers.Factory(RankingService, db=repositories.get_db)
    # 분배/감쇠는 같은 세션의 PointService 를 통해 포인트를 변경한다
    loot_service = providers.Factory(
        LootService, db=repositories.get_db, point_service=point_service
    )
    decay_service = providers.Factory(
        DecayService, db=repositories.get_db, point_service=point_service
    )


class Container(containers.DeclarativeContainer):
    """Application container."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "dkpapi.routers.health_router",
            "dkpapi.routers.loot_system_router",
            "dkpapi.routers.point_router",
            "dkpapi.routers.loot_router",
        ],
    )

    config = providers.Container(ConfigModule)
    repositories = providers.Container(RepositoryModule)
    services = providers.Container(
        ServiceModule, config=config, repositories=repositories
    )
