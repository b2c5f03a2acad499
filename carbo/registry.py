"""A registry of named flow factories, for picking a flow to run by name."""

from __future__ import annotations

from carbo.flow import Factory


class NoMatchingFlowError(LookupError):
    """Raised when no flow is registered under the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f'no matching flow is found with name "{name}"')
        self.name = name


class Registry:
    """Maps names to flow factories, like subcommands of an executable."""

    def __init__(self) -> None:
        self._factories: dict[str, Factory] = {}

    def register(self, name: str, factory: Factory) -> None:
        """Register ``factory`` under ``name``, replacing any previous one."""
        self._factories[name] = factory

    async def run(self, name: str) -> None:
        """Build the flow registered under ``name`` and run it."""
        try:
            factory = self._factories[name]
        except KeyError:
            raise NoMatchingFlowError(name) from None
        await factory.build().run()