"""Echo demo function entrypoint.

Runs the invocation loop against the runtime API named in
``AWS_LAMBDA_RUNTIME_API``, answering every invocation with its own body.

Usage (as the function's bootstrap):
    python -m invokeloop.apps.echo.main
"""

import asyncio

from invokeloop.apps.echo.runners import Echo
from invokeloop.core.runtime import LoopStats, Runtime


async def run_echo(runtime: Runtime | None = None, runner: Echo | None = None) -> LoopStats:
    """Run the echo function until the runtime is stopped.

    Args:
        runtime: Runtime to drive; built from the environment when omitted.
        runner: Echo runner instance, mainly to inspect ``handled`` afterwards.

    Raises:
        ConfigurationError: If no runtime is given and none is configured.
    """
    runtime = runtime or Runtime.from_env()
    async with runtime:
        return await runtime.loop(runner or Echo())


def main() -> None:
    """Main entry point for the echo function."""
    asyncio.run(run_echo())


if __name__ == "__main__":
    main()
