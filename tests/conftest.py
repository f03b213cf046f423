import pytest

from statewalk.config import EngineConfig, StatewalkConfig
from statewalk.runners import InMemoryRunner
from statewalk.workflow import Execution, Workflow


@pytest.fixture
def config():
    return StatewalkConfig(engine=EngineConfig(poll_interval=0.01))


@pytest.fixture
def runner():
    return InMemoryRunner()


@pytest.fixture
def execute(config, runner):
    """Build a workflow from a definition and run it to completion."""

    async def _execute(definition, input=None, **kwargs):
        execution = Execution(
            Workflow(definition), input=input, runner=runner, config=config, **kwargs
        )
        await execution.run()
        return execution

    return _execute
