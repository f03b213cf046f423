"""Example showing how to run a workflow with the configured container runner."""

import asyncio
import json
import sys

from statewalk import Execution, Workflow, get_runner


async def main():
    workflow_path = sys.argv[1]
    input_json = sys.argv[2] if len(sys.argv) > 2 else "{}"

    execution = Execution(
        Workflow.load(workflow_path),
        input=json.loads(input_json),
        runner=get_runner(),
    )
    await execution.run()

    print(f"Status: {execution.status}")
    print(f"Output: {execution.output}")


if __name__ == "__main__":
    asyncio.run(main())
