"""Tests for the dependency Container and build_container wiring."""

from unittest.mock import MagicMock

import pytest

from aumos_case_manager.adapters.repositories import LawsuitRepository, LawyerRepository
from aumos_case_manager.bootstrap import (
    LAWSUIT_REPOSITORY,
    LAWSUIT_SERVICE,
    LAWYER_REPOSITORY,
    LAWYER_SERVICE,
    build_container,
)
from aumos_case_manager.core.container import Container
from aumos_case_manager.core.services import LawsuitService, LawyerService
from aumos_case_manager.errors import ConfigurationError
from aumos_case_manager.settings import Settings


class _Counter:
    """Factory that records how many objects it built."""

    def __init__(self) -> None:
        self.calls = 0

    def __call__(self, *dependencies: object) -> tuple:
        self.calls += 1
        return (self.calls, *dependencies)


@pytest.fixture
def container() -> Container:
    """Provide an empty container."""
    return Container()


class TestContainerResolution:
    """Tests for registering and resolving dependencies."""

    def test_singleton_is_built_once(self, container: Container) -> None:
        """Singletons are cached after the first resolution."""
        factory = _Counter()
        container.register_singleton("config", factory)

        assert container.resolve("config") is container.resolve("config")
        assert factory.calls == 1

    def test_transient_is_built_per_resolution(self, container: Container) -> None:
        """Non-singleton registrations produce a fresh instance every time."""
        factory = _Counter()
        container.register("job", factory)

        first = container.resolve("job")
        second = container.resolve("job")

        assert first != second
        assert factory.calls == 2

    def test_dependencies_are_passed_positionally_in_order(self, container: Container) -> None:
        """Dependencies resolve depth-first and reach the factory in declared order."""
        container.register_instance("a", "A")
        container.register_instance("b", "B")
        container.register("pair", lambda first, second: f"{first}{second}", dependencies=["b", "a"])
        container.register("outer", lambda pair: pair.lower(), dependencies=["pair"])

        assert container.resolve("outer") == "ba"

    def test_register_instance_returns_the_same_object(self, container: Container) -> None:
        instance = object()
        container.register_instance("thing", instance)

        assert container.resolve("thing") is instance

    def test_unknown_name_raises_configuration_error(self, container: Container) -> None:
        with pytest.raises(ConfigurationError, match="Service 'missing' not found in container"):
            container.resolve("missing")

    def test_missing_dependency_names_the_requirer(self, container: Container) -> None:
        """A missing dependency reports which registration needed it."""
        container.register("service", lambda repo: repo, dependencies=["repo"])

        with pytest.raises(ConfigurationError, match=r"'repo'.*required by 'service'"):
            container.resolve("service")

    def test_cycle_is_detected(self, container: Container) -> None:
        """A dependency cycle fails with the cycle path instead of recursing."""
        container.register("a", lambda b: b, dependencies=["b"])
        container.register("b", lambda c: c, dependencies=["c"])
        container.register("c", lambda a: a, dependencies=["a"])

        with pytest.raises(ConfigurationError, match="Circular dependency detected: a -> b -> c -> a"):
            container.resolve("a")

    def test_self_dependency_is_a_cycle(self, container: Container) -> None:
        container.register("loop", lambda loop: loop, dependencies=["loop"])

        with pytest.raises(ConfigurationError, match="loop -> loop"):
            container.resolve("loop")

    def test_reregistering_drops_cached_singleton(self, container: Container) -> None:
        """Replacing a registration discards the instance cached for it."""
        container.register_singleton("value", lambda: "old")
        assert container.resolve("value") == "old"

        container.register_singleton("value", lambda: "new")

        assert container.resolve("value") == "new"

    def test_has_registered_names_and_clear(self, container: Container) -> None:
        container.register("x", object)
        container.register_singleton("y", object)

        assert container.has("x")
        assert container.registered_names() == ["x", "y"]

        container.clear()

        assert not container.has("x")
        assert container.registered_names() == []


class TestBuildContainer:
    """Tests for the application wiring."""

    def test_services_share_session_bound_repositories(self, settings: Settings) -> None:
        """Both services resolve with repositories bound to the given session."""
        session = MagicMock()
        logger = MagicMock()
        container = build_container(session, settings, logger)

        lawyer_service = container.resolve(LAWYER_SERVICE)
        lawsuit_service = container.resolve(LAWSUIT_SERVICE)
        lawyer_repository = container.resolve(LAWYER_REPOSITORY)

        assert isinstance(lawyer_service, LawyerService)
        assert isinstance(lawsuit_service, LawsuitService)
        assert isinstance(lawyer_repository, LawyerRepository)
        assert isinstance(container.resolve(LAWSUIT_REPOSITORY), LawsuitRepository)
        assert lawyer_service.repository is lawyer_repository
        assert lawyer_repository.session is session
        assert container.resolve(LAWYER_SERVICE) is lawyer_service

    def test_each_call_builds_an_independent_container(self, settings: Settings) -> None:
        """Containers do not share instances across units of work."""
        first = build_container(MagicMock(), settings)
        second = build_container(MagicMock(), settings)

        assert first.resolve(LAWYER_REPOSITORY) is not second.resolve(LAWYER_REPOSITORY)
