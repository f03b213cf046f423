"""Simple example running a workflow against in-process handlers."""

import asyncio
import logging

from statewalk import Execution, Workflow
from statewalk.runners import InMemoryRunner

WORKFLOW = """
Comment: Greet every customer, retrying flaky lookups
StartAt: Lookup
States:
  Lookup:
    Type: Map
    ItemsPath: $.customers
    ItemSelector:
      id.$: $$.Map.Item.Value
    MaxConcurrency: 2
    ItemProcessor:
      StartAt: Fetch
      States:
        Fetch:
          Type: Task
          Resource: docker://customers:latest
          Retry:
            - ErrorEquals: [Lookup.Flaky]
              IntervalSeconds: 0.1
          End: true
    ResultPath: $.profiles
    Next: Greet
  Greet:
    Type: Pass
    Parameters:
      greetings.$: States.Array(States.Format('Hello, {}!', $.profiles[0].name), States.Format('Hello, {}!', $.profiles[1].name))
    End: true
"""


async def main():
    """Run the greeting workflow."""
    logging.basicConfig(level=logging.INFO)

    calls = {"count": 0}

    def fetch(env, secrets):
        calls["count"] += 1
        if calls["count"] == 1:
            return 1, '{"Error": "Lookup.Flaky", "Cause": "cold cache"}'
        return {"name": f"customer-{env['id']}"}

    runner = InMemoryRunner({"docker://customers:latest": fetch})
    execution = Execution(Workflow.load(WORKFLOW), input={"customers": [1, 2]}, runner=runner)
    await execution.run()
    execution.raise_for_status()

    print(f"Workflow finished with status {execution.status}")
    print(f"Output: {execution.output}")


if __name__ == "__main__":
    asyncio.run(main())
