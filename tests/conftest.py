import pytest

from mdpages.core.faults import FaultHook
from mdpages.domains.rendering.services import RenderPipeline, ServiceRegistry

from tests.fakes import make_pipeline, run


@pytest.fixture(scope="session")
def real_registry():
    """Реестр с настоящими библиотеками, загружается один раз"""
    registry = ServiceRegistry()
    run(registry.wait_ready())
    return registry


@pytest.fixture
def real_pipeline(real_registry):
    return RenderPipeline(real_registry)


@pytest.fixture
def fake_pipeline():
    return make_pipeline()


@pytest.fixture
def hook():
    return FaultHook()
